"""Google OAuth 2.0 client for admin sign-in.

Talks to Google's fixed authorization-code endpoints: builds the consent URL,
exchanges the callback code through Authlib and reads the v1 userinfo profile.
"""

from typing import Optional
from urllib.parse import quote, urlencode

import httpx
from authlib.integrations.httpx_client import AsyncOAuth2Client

from admin_sso.config import Settings
from admin_sso.schemas.sso import GoogleProfile

OAUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/auth"
OAUTH_TOKEN_ENDPOINT = "https://accounts.google.com/o/oauth2/token"
OAUTH_USER_INFO_ENDPOINT = "https://www.googleapis.com/oauth2/v1/userinfo"
OAUTH_GRANT_TYPE = "authorization_code"
OAUTH_RESPONSE_TYPE = "code"


class GoogleOAuthError(Exception):
    """Raised when Google answers with something unusable."""


class GoogleOAuthClient:
    """Build the consent URL and run the code exchange against Google."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client_id = settings.GOOGLE_OAUTH_CLIENT_ID or ""
        self.client_secret = settings.GOOGLE_OAUTH_CLIENT_SECRET or ""
        self.redirect_uri = settings.GOOGLE_OAUTH_REDIRECT_URI or ""
        self.scope = settings.GOOGLE_OAUTH_SCOPE or ""
        self.timeout = settings.GOOGLE_HTTP_TIMEOUT
        self.transport = transport

    def authorization_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "response_type": OAUTH_RESPONSE_TYPE,
        }
        return f"{OAUTH_ENDPOINT}?{urlencode(params, quote_via=quote)}"

    async def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token."""
        async with AsyncOAuth2Client(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
            token_endpoint_auth_method="client_secret_post",
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            token = await client.fetch_token(
                OAUTH_TOKEN_ENDPOINT, code=code, grant_type=OAUTH_GRANT_TYPE
            )

        access_token = token.get("access_token")
        if not access_token:
            raise GoogleOAuthError("No access token returned from Google")
        return access_token

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            response = await client.get(
                OAUTH_USER_INFO_ENDPOINT, params={"access_token": access_token}
            )
        response.raise_for_status()
        return GoogleProfile.model_validate(response.json())
