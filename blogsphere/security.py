"""
Password hashing and session tokens.

Passwords are hashed with Argon2id through passlib's ``CryptContext``;
pbkdf2 is accepted for verification only so older hashes keep working.
Session tokens are HS256 JWTs whose ``sub`` claim is the user id.
"""
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from blogsphere.config import Settings
from blogsphere.errors import InvalidSessionError


class PasswordHasher:
    def __init__(self, settings: Settings) -> None:
        self.pwd_context = CryptContext(
            schemes=["argon2", "pbkdf2_sha256"],
            deprecated="pbkdf2_sha256",
            argon2__memory_cost=settings.ARGON2_MEMORY_COST,
            argon2__time_cost=settings.ARGON2_TIME_COST,
            argon2__parallelism=settings.ARGON2_PARALLELISM,
        )

    def hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        """Constant-time comparison; malformed hashes count as a mismatch."""
        try:
            return self.pwd_context.verify(password, hashed)
        except (ValueError, TypeError):
            return False

    # Async variants: argon2 runs in the threadpool, off the event loop.

    async def hash_password(self, password: str) -> str:
        return await run_in_threadpool(self.hash, password)

    async def verify_password(self, password: str, hashed: str) -> bool:
        return await run_in_threadpool(self.verify, password, hashed)


class TokenManager:
    def __init__(self, settings: Settings) -> None:
        self.secret_key = settings.SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expires_in = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    def create_access_token(self, user_id: int, expires_delta: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self.expires_in),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_access_token(self, token: str) -> int:
        """Return the user id embedded in *token*."""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
            return int(payload["sub"])
        except jwt.ExpiredSignatureError as exc:
            raise InvalidSessionError("Access token has expired") from exc
        except (jwt.InvalidTokenError, ValueError) as exc:
            raise InvalidSessionError() from exc
