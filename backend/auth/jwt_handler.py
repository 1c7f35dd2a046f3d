from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config


def create_access_token(principal_id: int, kind: str, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(principal_id),
        "kind": kind,
        "exp": issued_at + timedelta(minutes=expire_minutes),
        "iat": issued_at,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
