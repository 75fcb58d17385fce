"""SSO endpoints: Google sign-in for the admin panel and SSO role mapping."""

import logging
import uuid
from typing import Annotated, Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Query,
    Request,
    status,
)
from fastapi.responses import HTMLResponse, RedirectResponse

from admin_sso.api.deps import (
    get_app_settings,
    get_current_user,
    get_event_hub,
    get_google_client,
    get_role_directory,
    get_sign_in_service,
)
from admin_sso.config import Settings
from admin_sso.db.models import User
from admin_sso.oauth import GoogleOAuthClient
from admin_sso.schemas.sso import SsoRoleMapping, SsoRolesUpdateRequest
from admin_sso.services.accounts import SqlRoleDirectory, UnknownRoleError
from admin_sso.services.events import EventHub
from admin_sso.services.google_oauth import (
    GoogleSignInService,
    SignInFailure,
    SignInResult,
    SignInSuccess,
)
from admin_sso.services.sso import render_sign_up_error, render_sign_up_success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sso", tags=["sso"])


def render_sign_in_result(result: SignInResult, settings: Settings) -> HTMLResponse:
    """Turn a sign-in outcome into the page the browser lands on."""
    if isinstance(result, SignInFailure):
        logger.warning(
            "Google sign-in failed (%s): %s", result.reason.value, result.message
        )
        return HTMLResponse(render_sign_up_error(result.message))

    # Client-side session persistence, the only inline script allowed is ours
    nonce = str(uuid.uuid4())
    html = render_sign_up_success(result.token, result.sanitized_user, nonce, settings)
    return HTMLResponse(
        html, headers={"Content-Security-Policy": f"script-src 'nonce-{nonce}'"}
    )


@router.get("/google")
async def google_sign_in(
    google: Annotated[GoogleOAuthClient, Depends(get_google_client)],
) -> RedirectResponse:
    """Redirect the browser to Google's consent page."""
    return RedirectResponse(
        url=google.authorization_url(), status_code=status.HTTP_301_MOVED_PERMANENTLY
    )


@router.get("/google/callback", response_class=HTMLResponse)
async def google_sign_in_callback(
    request: Request,
    background_tasks: BackgroundTasks,
    service: Annotated[GoogleSignInService, Depends(get_sign_in_service)],
    events: Annotated[EventHub, Depends(get_event_hub)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    code: Optional[str] = Query(default=None),
) -> HTMLResponse:
    """
    Handle Google's redirect back to the panel.

    Logs an existing account in, or creates one, and answers with an HTML page
    that hands the session token to the admin panel. Failures are rendered as
    an error page. Listeners and webhooks for a newly created account run
    after the page has been sent.
    """
    result = await service.sign_in(code, request.headers)
    if isinstance(result, SignInSuccess) and result.event is not None:
        background_tasks.add_task(events.emit, result.event)
    return render_sign_in_result(result, settings)


@router.get("/sso-roles", response_model=list[SsoRoleMapping])
async def read_sso_roles(
    _: Annotated[User, Depends(get_current_user)],
    roles: Annotated[SqlRoleDirectory, Depends(get_role_directory)],
) -> list[SsoRoleMapping]:
    """Default roles granted to accounts created through each provider."""
    return await roles.sso_roles()


@router.put("/roles", response_model=list[SsoRoleMapping])
async def update_sso_roles(
    payload: SsoRolesUpdateRequest,
    _: Annotated[User, Depends(get_current_user)],
    roles: Annotated[SqlRoleDirectory, Depends(get_role_directory)],
) -> list[SsoRoleMapping]:
    """Replace the default roles for the given providers."""
    try:
        return await roles.update_sso_roles(payload.roles)
    except UnknownRoleError as error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(error)
        ) from error
