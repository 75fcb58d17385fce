from functools import lru_cache
from typing import Annotated, AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from admin_sso.db.database import AsyncSessionLocal
from fastapi.security import OAuth2PasswordBearer
from admin_sso.config import Settings, get_settings
from admin_sso.db import crud
from admin_sso.db.models import User
from fastapi import Depends, HTTPException, status
from admin_sso.core.security import verify_access_token
from admin_sso.oauth import GoogleOAuthClient
from admin_sso.services.accounts import (
    JwtTokenIssuer,
    SqlRoleDirectory,
    SqlUserDirectory,
)
from admin_sso.services.events import EventHub, build_event_hub
from admin_sso.services.google_oauth import GoogleSignInService
import jwt

# Admin tokens are only issued by the SSO callback, there is no password login
reusable_oauth2 = OAuth2PasswordBearer(tokenUrl="/api/sso/google", auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as db:
        yield db


def get_app_settings() -> Settings:
    return get_settings()


def get_google_client(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> GoogleOAuthClient:
    return GoogleOAuthClient(settings)


@lru_cache
def get_event_hub() -> EventHub:
    """Process-wide hub so subscriptions survive across requests."""
    return build_event_hub(get_settings().webhook_urls)


def get_user_directory(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SqlUserDirectory:
    return SqlUserDirectory(db)


def get_role_directory(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SqlRoleDirectory:
    return SqlRoleDirectory(db)


def get_token_issuer(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> JwtTokenIssuer:
    return JwtTokenIssuer(settings.access_token_expire_minutes)


def get_sign_in_service(
    settings: Annotated[Settings, Depends(get_app_settings)],
    google: Annotated[GoogleOAuthClient, Depends(get_google_client)],
    users: Annotated[SqlUserDirectory, Depends(get_user_directory)],
    roles: Annotated[SqlRoleDirectory, Depends(get_role_directory)],
    tokens: Annotated[JwtTokenIssuer, Depends(get_token_issuer)],
) -> GoogleSignInService:
    return GoogleSignInService(
        settings=settings,
        google=google,
        users=users,
        roles=roles,
        tokens=tokens,
    )


async def get_current_user(
    token: Annotated[str | None, Depends(reusable_oauth2)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Validates the admin JWT and fetches the account from the DB"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception

    try:
        payload = verify_access_token(token)

        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception

        user_id = int(user_id_str)

    except (jwt.PyJWTError, ValueError):
        # If signature is wrong, expired, malformed, or the id is not an integer
        raise credentials_exception

    user = await crud.user.get_by_id(db, id=user_id)

    if user is None or not user.is_active or user.blocked:
        raise credentials_exception

    return user
