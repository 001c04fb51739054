import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from app.core.config import settings
from app.core.constants import RoleEnum


def create_access_token(user_id: int, role: RoleEnum, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "user_id": user_id,
        "role": RoleEnum(role).value,
        "jti": str(uuid.uuid4()),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ACCESS_TOKEN_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ACCESS_TOKEN_ALGORITHM])
