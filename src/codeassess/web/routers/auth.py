from datetime import datetime

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from codeassess.app import CurrentSession
from codeassess.core.modules.user.models import UserView
from codeassess.web.cookies import delete_session_token_cookie, set_session_token_cookie
from codeassess.web.deps import AppDep, ConfigDep, SessionAuthDep
from codeassess.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class VerifyRequest(BaseModel):
    """Magic-link redemption request."""

    token: str = Field(..., min_length=1, description="Token from the magic link")
    email: str = Field(..., min_length=1, description="Email address the link was sent to")


class VerifyResponse(BaseModel):
    """Authentication response. The session token itself is only sent as a cookie."""

    user: UserView = Field(..., description="Authenticated user")
    redirect_to: str = Field(..., description="Where the client should navigate next")
    expires_at: datetime = Field(..., description="Session expiry")


@router.post(
    "/auth/verify",
    summary="Redeem magic link",
    description="Exchange a one-time magic-link token for a session cookie.",
    operation_id="verifyMagicLink",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid, expired or already used magic link"},
    },
)
async def verify(verify_data: VerifyRequest, app: AppDep, config: ConfigDep, response: Response) -> VerifyResponse:
    """Authenticate via magic link and create session."""
    login = await app.login_with_invitation(verify_data.token.strip(), verify_data.email.strip())

    set_session_token_cookie(response, login.auth_token, login.session.expires_at, secure=config.cookie_secure)

    return VerifyResponse(
        user=UserView.from_domain(login.user),
        redirect_to="/admin" if login.user.is_admin else "/candidate",
        expires_at=login.session.expires_at,
    )


@router.post(
    "/auth/logout",
    summary="End session",
    description="Invalidate the current session and remove its cookie.",
    operation_id="logout",
    status_code=204,
    responses={
        204: {"description": "Successfully logged out"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def logout(app: AppDep, config: ConfigDep, auth: SessionAuthDep, response: Response) -> None:
    await app.logout(auth)
    delete_session_token_cookie(response, secure=config.cookie_secure)


@router.post(
    "/auth/logout-all",
    summary="End all sessions",
    description="Invalidate every session of the current user on all devices and remove this cookie.",
    operation_id="logoutEverywhere",
    status_code=204,
    responses={
        204: {"description": "All sessions ended"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def logout_everywhere(app: AppDep, config: ConfigDep, auth: SessionAuthDep, response: Response) -> None:
    await app.logout_everywhere(auth)
    delete_session_token_cookie(response, secure=config.cookie_secure)


@router.get(
    "/auth/session",
    summary="Get current session",
    description="Get the authenticated user and the expiry of the current session.",
    operation_id="getCurrentSession",
    responses={
        200: {"description": "Current session"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_session(app: AppDep, auth: SessionAuthDep) -> CurrentSession:
    return await app.get_current_session(auth)
