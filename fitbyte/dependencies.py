"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fitbyte.config import get_settings
from fitbyte.db import DbClient, InMemoryDbClient, SqlDbClient, UserRecord
from fitbyte.email_cache import EmailCache, InMemoryEmailCache, RedisEmailCache
from fitbyte.errors import AuthError, TokenExpiredError
from fitbyte.security import TokenService
from fitbyte.storage import InMemoryStorageClient, S3StorageClient, StorageClient

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_email_cache: EmailCache | None = None
_token_service: TokenService | None = None

bearer_scheme = HTTPBearer(auto_error=False)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so the engine's connection pool is shared.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory database")
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.aws_s3_bucket:
        logger.info("Using in-memory object storage")
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.aws_s3_bucket,
            region=settings.aws_region or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            endpoint=settings.aws_s3_endpoint,
        )
    return _storage_client


def get_email_cache() -> EmailCache:
    global _email_cache
    if _email_cache:
        return _email_cache

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _email_cache = RedisEmailCache(
            url=settings.redis_url,
            key=settings.redis_email_cache_key,
        )
    else:
        _email_cache = InMemoryEmailCache(max_size=settings.email_cache_size)
    return _email_cache


def get_token_service() -> TokenService:
    global _token_service
    if _token_service:
        return _token_service

    settings = get_settings()
    _token_service = TokenService(
        secret=settings.jwt_secret or "",
        expires_in_seconds=settings.jwt_expires_in_seconds,
    )
    return _token_service


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
    db: DbClient = Depends(get_db_client),
) -> UserRecord:
    """Resolve the bearer token to the caller's user row."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = tokens.decode(credentials.credentials)
    except TokenExpiredError:
        raise HTTPException(status_code=401, detail="Token expired")
    except AuthError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.get_user_by_email(claims.sub)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
