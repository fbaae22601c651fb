"""
Password hashing and JWT issuing/verification.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from fitbyte.errors import InvalidTokenError, TokenExpiredError

JWT_ALGORITHM = "HS256"
PASSWORD_HASH_METHOD = "pbkdf2:sha256"


def hash_password(password: str) -> str:
    return generate_password_hash(password, method=PASSWORD_HASH_METHOD)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


@dataclass(frozen=True)
class Claims:
    sub: str
    exp: int


@dataclass
class TokenService:
    """Issues and verifies HS256 tokens whose subject is the user's email."""

    secret: str
    expires_in_seconds: int = 7 * 24 * 3600

    def __post_init__(self):
        if not self.secret:
            raise ValueError("JWT_SECRET cannot be empty")

    def issue(self, email: str, *, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(seconds=self.expires_in_seconds)
        payload = {"sub": email, "exp": int(expires_at.timestamp())}
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def decode(self, token: str) -> Claims:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError("Invalid token") from exc
        return Claims(sub=payload["sub"], exp=payload["exp"])
