"""Session cookie transport.

The cookie only ever carries the raw token; hashed ids stay server-side.
"""

from datetime import UTC, datetime

from starlette.requests import HTTPConnection
from starlette.responses import Response

SESSION_COOKIE_NAME = "auth-session"
SESSION_COOKIE_PATH = "/"


def get_session_token_cookie(request: HTTPConnection) -> str | None:
    return request.cookies.get(SESSION_COOKIE_NAME) or None


def set_session_token_cookie(response: Response, token: str, expires_at: datetime, *, secure: bool) -> None:
    """Store the token client-side with the same expiry as its session."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        expires=expires_at.astimezone(UTC),
        path=SESSION_COOKIE_PATH,
        httponly=True,
        samesite="lax",
        secure=secure,
    )


def delete_session_token_cookie(response: Response, *, secure: bool) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path=SESSION_COOKIE_PATH,
        httponly=True,
        samesite="lax",
        secure=secure,
    )


def sets_session_cookie(response: Response) -> bool:
    """Whether the response already sets or deletes the session cookie."""
    prefix = f"{SESSION_COOKIE_NAME}="
    return any(value.startswith(prefix) for value in response.headers.getlist("set-cookie"))
