from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from admin_sso.core.security import generate_password, get_password_hash
from admin_sso.db.models import Role, SsoRole, User


class DuplicateEmailError(ValueError):
    """Raised when an account with the same email already exists."""


class CRUDUser:
    """CRUD operations for User."""

    async def get_by_id(self, db: AsyncSession, id: int) -> User | None:
        result = await db.execute(select(User).where(User.id == id))
        return result.scalar_one_or_none()

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def create_sso_user(
        self,
        db: AsyncSession,
        *,
        email: str,
        firstname: str | None,
        lastname: str | None,
        prefered_language: str | None,
        roles: Sequence[Role],
    ) -> User:
        # SSO accounts never log in with a password, but the panel requires one
        db_obj = User(
            email=email.lower(),
            firstname=firstname or "unset",
            lastname=lastname or "",
            hashed_password=get_password_hash(generate_password()),
            prefered_language=prefered_language,
            is_active=True,
            roles=list(roles),
        )
        db.add(db_obj)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise DuplicateEmailError(f"Email {email} is already registered") from exc
        await db.refresh(db_obj)
        return db_obj


class CRUDRole:
    """CRUD operations for Role."""

    async def get_many(self, db: AsyncSession, ids: Sequence[int]) -> list[Role]:
        if not ids:
            return []
        result = await db.execute(select(Role).where(Role.id.in_(ids)))
        return list(result.scalars().all())

    async def get_multi(self, db: AsyncSession) -> list[Role]:
        result = await db.execute(select(Role).order_by(Role.id))
        return list(result.scalars().all())


class CRUDSsoRole:
    """CRUD operations for SsoRole."""

    async def get_by_oauth_type(
        self, db: AsyncSession, oauth_type: str
    ) -> SsoRole | None:
        result = await db.execute(
            select(SsoRole).where(SsoRole.oauth_type == oauth_type)
        )
        return result.scalar_one_or_none()

    async def get_multi(self, db: AsyncSession) -> list[SsoRole]:
        result = await db.execute(select(SsoRole).order_by(SsoRole.oauth_type))
        return list(result.scalars().all())

    async def upsert(
        self, db: AsyncSession, oauth_type: str, role_ids: Sequence[int]
    ) -> SsoRole:
        db_obj = await self.get_by_oauth_type(db, oauth_type)
        if db_obj is None:
            db_obj = SsoRole(oauth_type=oauth_type, roles=list(role_ids))
        else:
            db_obj.roles = list(role_ids)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


# Instantiate singletons
user = CRUDUser()
role = CRUDRole()
sso_role = CRUDSsoRole()
