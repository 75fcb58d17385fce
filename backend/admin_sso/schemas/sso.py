from pydantic import BaseModel, ConfigDict, Field


class GoogleProfile(BaseModel):
    """Subset of Google's v1 userinfo payload used for sign-in."""

    model_config = ConfigDict(extra="ignore")

    email: str
    given_name: str | None = None
    family_name: str | None = None
    hd: str | None = None  # Workspace domain, absent for consumer accounts


class SsoRoleMapping(BaseModel):
    oauth_type: str
    name: str
    role: list[int] = Field(default_factory=list)


class SsoRoleUpdate(BaseModel):
    oauth_type: str
    role: list[int] = Field(default_factory=list)


class SsoRolesUpdateRequest(BaseModel):
    roles: list[SsoRoleUpdate]
