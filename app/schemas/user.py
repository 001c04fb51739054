from pydantic import BaseModel, ConfigDict
from typing import Optional

from app.core.constants import RoleEnum

class UserContext(BaseModel):
    """Identity of the caller, taken from a verified bearer token."""
    user_id: int
    role: RoleEnum
    access_token: Optional[str] = None

    model_config = ConfigDict(frozen=True)
