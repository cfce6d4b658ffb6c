from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, cast

import jwt
from passlib.context import CryptContext

from cms.core.config import settings

_ALGO: str = settings.jwt_algorithm
_ISSUER = "cms-admin"

# argon2 for new hashes; bcrypt variants are still verified and upgraded on login
_pwd = CryptContext(
    schemes=["argon2", "bcrypt_sha256", "bcrypt"],
    default="argon2",
    deprecated="auto",
)


class TokenError(Exception):
    pass


def hash_password(raw: str) -> str:
    return cast(str, _pwd.hash(raw))


def verify_password(raw: str, hashed: str) -> bool:
    return cast(bool, _pwd.verify(raw, hashed))


def password_needs_rehash(hashed: str) -> bool:
    return cast(bool, _pwd.needs_update(hashed))


def create_access_token(sub: str, *, minutes: int | None = None) -> str:
    minutes = minutes or settings.access_token_expire_minutes
    now = datetime.utcnow()
    payload: dict[str, Any] = {
        "sub": sub,
        "iss": _ISSUER,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGO)


def decode_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[_ALGO],
            issuer=_ISSUER,
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as err:
        raise TokenError(str(err)) from err
    return cast(dict[str, Any], payload)
