"""Pytest configuration shared across the suite."""

import os
from datetime import datetime, timezone

_DEFAULT_ENV_VARS: dict[str, str] = {
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "SECRET_KEY": "test-secret-key",
    "GOOGLE_OAUTH_CLIENT_ID": "test-client-id.apps.googleusercontent.com",
    "GOOGLE_OAUTH_CLIENT_SECRET": "test-client-secret",
    "GOOGLE_OAUTH_REDIRECT_URI": "https://cms.example.com/api/sso/google/callback",
    "GOOGLE_OAUTH_SCOPE": "https://www.googleapis.com/auth/userinfo.email profile",
    "WEBHOOK_URLS": "",
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from admin_sso.api import deps  # noqa: E402
from admin_sso.config import get_settings  # noqa: E402
from admin_sso.db.crud import DuplicateEmailError  # noqa: E402
from admin_sso.db.database import Base  # noqa: E402
from admin_sso.db.models import Role, User  # noqa: E402
from admin_sso.main import app  # noqa: E402
from admin_sso.schemas.sso import GoogleProfile  # noqa: E402
from admin_sso.services.events import ENTRY_CREATE, EventHub  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
async def db_session():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session

    await engine.dispose()


def make_user(id: int, email: str, **fields) -> User:
    now = datetime.now(timezone.utc)
    values = {
        "firstname": "Ada",
        "lastname": "Lovelace",
        "is_active": True,
        "blocked": False,
        "prefered_language": "en",
        "roles": [],
        "created_at": now,
        "updated_at": now,
    }
    values.update(fields)
    return User(id=id, email=email, **values)


class FakeGoogleClient:
    def __init__(self, profile: dict | None = None, error: Exception | None = None):
        self.profile = profile or {
            "email": "ada@example.com",
            "given_name": "Ada",
            "family_name": "Lovelace",
        }
        self.error = error
        self.codes: list[str] = []
        self.access_tokens: list[str] = []

    def authorization_url(self) -> str:
        return "https://accounts.google.com/o/oauth2/auth?client_id=fake"

    async def exchange_code(self, code: str) -> str:
        self.codes.append(code)
        if self.error is not None:
            raise self.error
        return "T"

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        self.access_tokens.append(access_token)
        return GoogleProfile.model_validate(self.profile)


class FakeUserDirectory:
    def __init__(self, users: list[User] | None = None):
        self.users = {user.email: user for user in users or []}
        self.lookups: list[str] = []
        self.created: list[dict] = []
        self.create_error: Exception | None = None

    async def find_one_by_email(self, email: str) -> User | None:
        self.lookups.append(email)
        return self.users.get(email.lower())

    async def create_user(self, email, family_name, given_name, locale, role_ids):
        self.created.append(
            {
                "email": email,
                "family_name": family_name,
                "given_name": given_name,
                "locale": locale,
                "role_ids": list(role_ids),
            }
        )
        if self.create_error is not None:
            raise self.create_error
        roles = [
            Role(id=role_id, name=f"Role {role_id}", code=f"role-{role_id}")
            for role_id in role_ids
        ]
        user = make_user(
            len(self.users) + 100,
            email.lower(),
            firstname=given_name,
            lastname=family_name,
            prefered_language=locale,
            roles=roles,
        )
        self.users[user.email] = user
        return user


class RacingUserDirectory(FakeUserDirectory):
    """Simulates another callback registering the email between lookup and create."""

    def __init__(self, winner: User):
        super().__init__()
        self.winner = winner

    async def create_user(self, email, family_name, given_name, locale, role_ids):
        self.users[self.winner.email] = self.winner
        raise DuplicateEmailError(f"Email {email} is already registered")


class FakeRoleDirectory:
    def __init__(self, role_ids: list[int] | None = None):
        self.role_ids = role_ids or []
        self.calls = 0

    async def google_roles(self) -> list[int]:
        self.calls += 1
        return list(self.role_ids)


class FakeTokenIssuer:
    def __init__(self):
        self.issued_for: list[int] = []

    def create_jwt_token(self, user: User) -> str:
        self.issued_for.append(user.id)
        return f"token-{user.id}"


CALLBACK_URL = "/api/sso/google/callback"


class Collaborators:
    def __init__(self):
        self.settings = get_settings().model_copy()
        self.google = FakeGoogleClient()
        self.users = FakeUserDirectory()
        self.roles = FakeRoleDirectory()
        self.tokens = FakeTokenIssuer()
        self.hub = EventHub()
        self.events = []

        async def record(event):
            self.events.append(event)

        self.hub.subscribe(ENTRY_CREATE, record)


@pytest.fixture()
def collaborators():
    fakes = Collaborators()
    app.dependency_overrides.update(
        {
            deps.get_app_settings: lambda: fakes.settings,
            deps.get_google_client: lambda: fakes.google,
            deps.get_user_directory: lambda: fakes.users,
            deps.get_role_directory: lambda: fakes.roles,
            deps.get_token_issuer: lambda: fakes.tokens,
            deps.get_event_hub: lambda: fakes.hub,
        }
    )

    yield fakes

    app.dependency_overrides.clear()


async def call_callback(params=None, headers=None) -> httpx.Response:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        return await client.get(CALLBACK_URL, params=params, headers=headers)
