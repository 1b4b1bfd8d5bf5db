"""
Password hashing, identity tokens and request access control.

The signing secret comes from Settings once per process and is passed
explicitly into TokenService; nothing here keeps mutable state.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import Settings, get_settings
from database import USERS, find_one, to_object_id
from errors import (
    ForbiddenError,
    InvalidTokenError,
    MissingTokenError,
    UnknownUserError,
)

logger = logging.getLogger(__name__)

# bcrypt only considers the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing.

    >>> hasher = PasswordHasher(rounds=4)
    >>> stored = hasher.hash("abcdef")
    >>> hasher.verify("abcdef", stored)
    True
    """

    def __init__(self, rounds: int = 10):
        self._rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash. Malformed hashes never match."""
        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class TokenService:
    """Issues and verifies signed, time-limited identity tokens.

    Tokens carry the user's store id in ``sub`` and expire a fixed number
    of hours after issuance. There is no revocation: a token stays valid
    until ``exp`` even after logout.
    """

    ALGORITHM = "HS256"
    DEFAULT_EXPIRE_HOURS = 24

    def __init__(self, secret_key: str, expire_hours: int = DEFAULT_EXPIRE_HOURS):
        if not secret_key:
            raise ValueError("JWT secret key cannot be empty")
        self._secret_key = secret_key
        self._expire = timedelta(hours=expire_hours)

    def create_token(self, user_id: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self._expire,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.ALGORITHM)

    def verify_token(self, token: str) -> str:
        """Verify signature and expiry and return the user id.

        Raises:
            InvalidTokenError: The token is expired, badly signed or malformed.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.InvalidTokenError as e:
            # covers ExpiredSignatureError and missing claims
            raise InvalidTokenError() from e
        return payload["sub"]


# ----------------- Dependencies -----------------

bearer_scheme = HTTPBearer(auto_error=False)

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_password_hasher(settings: SettingsDep) -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


def get_token_service(settings: SettingsDep) -> TokenService:
    return TokenService(settings.jwt_secret)


def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> dict:
    """Resolve the bearer token to a stored user document."""
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()

    user_id = tokens.verify_token(credentials.credentials)
    oid = to_object_id(user_id)
    if oid is None:
        raise InvalidTokenError()

    user = find_one(USERS, {"_id": oid})
    if user is None:
        logger.info("Token for missing user %s rejected", user_id)
        raise UnknownUserError()
    return user


CurrentUser = Annotated[dict, Depends(get_current_user)]


def require_admin(user: CurrentUser) -> dict:
    if user.get("role") != "admin":
        raise ForbiddenError("Admin access required")
    return user


AdminUser = Annotated[dict, Depends(require_admin)]
PasswordHasherDep = Annotated[PasswordHasher, Depends(get_password_hasher)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]
