"""Google OAuth sign-in service for the admin panel.

This service runs the callback half of the Google flow:
- Exchanging the authorization code for an access token
- Fetching the user's profile from Google
- Enforcing the optional Workspace domain restriction
- Finding the admin account for the email or creating one
- Issuing a session token and building the creation event for new accounts

Every outcome is returned as a ``SignInSuccess`` or ``SignInFailure``; nothing
raised by Google or by a collaborator escapes ``sign_in``. Delivering the
creation event is left to the caller so webhooks never hold up the response.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from admin_sso.config import Settings
from admin_sso.db.crud import DuplicateEmailError
from admin_sso.db.models import User
from admin_sso.schemas.sso import GoogleProfile
from admin_sso.schemas.user import UserResponse
from admin_sso.services.events import ADMIN_USER_MODEL, ENTRY_CREATE, DomainEvent
from admin_sso.services.sso import add_gmail_alias, locale_find_by_header

logger = logging.getLogger(__name__)

MISSING_CODE_MESSAGE = "code Not Found"
UNAUTHORIZED_EMAIL_MESSAGE = "Unauthorized email address"


@runtime_checkable
class GoogleClient(Protocol):
    def authorization_url(self) -> str: ...

    async def exchange_code(self, code: str) -> str: ...

    async def fetch_profile(self, access_token: str) -> GoogleProfile: ...


@runtime_checkable
class UserDirectory(Protocol):
    async def find_one_by_email(self, email: str) -> Optional[User]: ...

    async def create_user(
        self,
        email: str,
        family_name: Optional[str],
        given_name: Optional[str],
        locale: Optional[str],
        role_ids: Sequence[int],
    ) -> User: ...


@runtime_checkable
class RoleDirectory(Protocol):
    async def google_roles(self) -> list[int]: ...


@runtime_checkable
class TokenIssuer(Protocol):
    def create_jwt_token(self, user: User) -> str: ...


class FailureReason(str, enum.Enum):
    MISSING_CODE = "missing_code"
    DOMAIN_REJECTED = "domain_rejected"
    UPSTREAM_FAILURE = "upstream_failure"
    SERVICE_FAILURE = "service_failure"


@dataclass(frozen=True)
class SignInSuccess:
    user: User
    token: str
    created: bool = False
    event: Optional[DomainEvent] = None

    @property
    def sanitized_user(self) -> dict[str, Any]:
        return sanitize_user(self.user)


@dataclass(frozen=True)
class SignInFailure:
    reason: FailureReason
    message: str


SignInResult = SignInSuccess | SignInFailure


def sanitize_user(user: Any) -> dict[str, Any]:
    """Public representation of an account, without credentials."""
    return UserResponse.model_validate(user).model_dump(mode="json")


class GoogleSignInService:
    """Sign an admin in (or up) from a Google authorization code."""

    def __init__(
        self,
        settings: Settings,
        google: GoogleClient,
        users: UserDirectory,
        roles: RoleDirectory,
        tokens: TokenIssuer,
    ) -> None:
        self.settings = settings
        self.google = google
        self.users = users
        self.roles = roles
        self.tokens = tokens

    async def sign_in(
        self, code: Optional[str], headers: Mapping[str, str]
    ) -> SignInResult:
        """
        Run the callback flow for one authorization code.

        Args:
            code: The ``code`` query parameter sent back by Google
            headers: Request headers, used for the new account's locale

        Returns:
            SignInSuccess with the account and session token, or SignInFailure
            tagged with why sign-in stopped
        """
        if not code:
            return SignInFailure(FailureReason.MISSING_CODE, MISSING_CODE_MESSAGE)

        try:
            access_token = await self.google.exchange_code(code)
            profile = await self.google.fetch_profile(access_token)
        except Exception as error:
            logger.exception("Google token exchange or profile fetch failed")
            return SignInFailure(FailureReason.UPSTREAM_FAILURE, str(error))

        hosted_domain = self.settings.GOOGLE_GSUITE_HD
        if hosted_domain and profile.hd != hosted_domain:
            logger.warning(
                "Rejected Google sign-in for %s: domain %r is not %r",
                profile.email,
                profile.hd,
                hosted_domain,
            )
            return SignInFailure(
                FailureReason.DOMAIN_REJECTED, UNAUTHORIZED_EMAIL_MESSAGE
            )

        email = add_gmail_alias(profile.email, self.settings.GOOGLE_ALIAS)

        try:
            return await self._resolve_account(email, profile, headers)
        except Exception as error:
            logger.exception("Could not sign in %s", email)
            return SignInFailure(FailureReason.SERVICE_FAILURE, str(error))

    async def _resolve_account(
        self, email: str, profile: GoogleProfile, headers: Mapping[str, str]
    ) -> SignInSuccess:
        user = await self.users.find_one_by_email(email)
        if user:
            # Already registered
            return SignInSuccess(user=user, token=self.tokens.create_jwt_token(user))

        role_ids = await self.roles.google_roles() or []
        locale = locale_find_by_header(headers, self.settings.supported_locales)
        try:
            user = await self.users.create_user(
                email, profile.family_name, profile.given_name, locale, role_ids
            )
        except DuplicateEmailError:
            # Another callback registered the same email first
            user = await self.users.find_one_by_email(email)
            if user is None:
                raise
            logger.info("Account for %s was created concurrently, reusing it", email)
            return SignInSuccess(user=user, token=self.tokens.create_jwt_token(user))

        token = self.tokens.create_jwt_token(user)
        event = DomainEvent(
            name=ENTRY_CREATE, model=ADMIN_USER_MODEL, entry=sanitize_user(user)
        )
        logger.info("Created admin account %s from Google sign-in", email)
        return SignInSuccess(user=user, token=token, created=True, event=event)
