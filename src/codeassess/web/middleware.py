from typing import cast

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from codeassess.app import App
from codeassess.core.modules.session.models import AuthToken, SessionValidationResult
from codeassess.web.cookies import (
    delete_session_token_cookie,
    get_session_token_cookie,
    set_session_token_cookie,
    sets_session_cookie,
)

logger = structlog.get_logger(__name__)


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Resolve the session cookie for every request and keep the cookie in sync.

    The validation result is exposed as `request.state.auth`. A valid session
    has its cookie re-sent with the (possibly renewed) expiry; an unusable
    token has its cookie removed. Responses that already set the session
    cookie themselves (login, logout) are left alone.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        token = get_session_token_cookie(request)
        if token is None:
            request.state.auth = SessionValidationResult()
            return await call_next(request)

        app = cast(App, request.app.state.app)
        result = await app.validate_session(AuthToken(token))
        request.state.auth = result

        response = await call_next(request)
        if sets_session_cookie(response):
            return response

        secure = app.config.cookie_secure
        if result.session is not None:
            set_session_token_cookie(response, token, result.session.expires_at, secure=secure)
        else:
            logger.debug("session_cookie_cleared", path=request.url.path)
            delete_session_token_cookie(response, secure=secure)
        return response
