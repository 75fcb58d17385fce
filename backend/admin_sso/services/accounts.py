"""Database-backed account, role and session-token capabilities.

These are the default collaborators handed to the sign-in flow; the flow
itself only relies on the method names used here.
"""

from datetime import timedelta
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from admin_sso.core.security import create_access_token
from admin_sso.db import crud
from admin_sso.db.models import User
from admin_sso.schemas.sso import SsoRoleMapping, SsoRoleUpdate

GOOGLE_OAUTH_TYPE = "google"

# oauth_type -> display name
OAUTH_TYPES = {GOOGLE_OAUTH_TYPE: "Google"}


class UnknownRoleError(ValueError):
    """Raised when a role mapping references roles that do not exist."""


class SqlUserDirectory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_one_by_email(self, email: str) -> User | None:
        return await crud.user.get_by_email(self.db, email=email)

    async def create_user(
        self,
        email: str,
        family_name: str | None,
        given_name: str | None,
        locale: str | None,
        role_ids: Sequence[int],
    ) -> User:
        roles = await crud.role.get_many(self.db, role_ids)
        return await crud.user.create_sso_user(
            self.db,
            email=email,
            firstname=given_name,
            lastname=family_name,
            prefered_language=locale,
            roles=roles,
        )


class SqlRoleDirectory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def google_roles(self) -> list[int]:
        """Role ids for accounts created through Google, empty if unmapped."""
        mapping = await crud.sso_role.get_by_oauth_type(self.db, GOOGLE_OAUTH_TYPE)
        if mapping is None or not mapping.roles:
            return []
        return list(mapping.roles)

    async def sso_roles(self) -> list[SsoRoleMapping]:
        stored = {
            mapping.oauth_type: mapping.roles
            for mapping in await crud.sso_role.get_multi(self.db)
        }
        return [
            SsoRoleMapping(
                oauth_type=oauth_type, name=name, role=stored.get(oauth_type, [])
            )
            for oauth_type, name in OAUTH_TYPES.items()
        ]

    async def update_sso_roles(
        self, updates: Sequence[SsoRoleUpdate]
    ) -> list[SsoRoleMapping]:
        for update in updates:
            if update.oauth_type not in OAUTH_TYPES:
                raise UnknownRoleError(f"Unknown oauth type: {update.oauth_type}")
            requested = set(update.role)
            found = {role.id for role in await crud.role.get_many(self.db, update.role)}
            missing = sorted(requested - found)
            if missing:
                raise UnknownRoleError(f"Unknown role ids: {missing}")

        for update in updates:
            await crud.sso_role.upsert(self.db, update.oauth_type, update.role)
        return await self.sso_roles()


class JwtTokenIssuer:
    """Issue admin session tokens bound to an account id."""

    def __init__(self, expire_minutes: int) -> None:
        self.expires_delta = timedelta(minutes=expire_minutes)

    def create_jwt_token(self, user: User) -> str:
        return create_access_token(subject=user.id, expires_delta=self.expires_delta)
