from datetime import datetime
from pydantic import BaseModel, ConfigDict


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str
    description: str | None = None


class UserResponse(BaseModel):
    """Sanitized admin account: everything except credentials."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    firstname: str | None
    lastname: str | None
    username: str | None = None
    is_active: bool
    blocked: bool
    prefered_language: str | None
    roles: list[RoleResponse] = []
    created_at: datetime
    updated_at: datetime
