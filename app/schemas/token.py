from pydantic import BaseModel
from typing import Optional

from app.core.constants import RoleEnum

class TokenPayload(BaseModel):
    user_id: int | None = None
    role: Optional[RoleEnum] = None
    jti: str | None = None
    exp: int | None = None
