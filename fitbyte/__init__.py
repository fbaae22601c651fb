"""
FitByte backend package.

A FastAPI service for a fitness-tracking app: JWT-authenticated profile and
activity endpoints over Postgres, with image uploads to S3.
"""
