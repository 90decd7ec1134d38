from typing import Annotated, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie

from codeassess.app import App
from codeassess.config import Config
from codeassess.core.modules.session.models import SessionValidationResult
from codeassess.web.cookies import SESSION_COOKIE_NAME

# Documents the cookie in OpenAPI; the middleware does the actual validation
cookie_scheme = APIKeyCookie(name=SESSION_COOKIE_NAME, scheme_name="SessionCookie", auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_config(request: Request) -> Config:
    return cast(Config, request.app.state.config)


async def get_session_auth(
    request: Request,
    _cookie: Annotated[str | None, Depends(cookie_scheme)] = None,
) -> SessionValidationResult:
    """Validation result for the request's session cookie (empty when unauthenticated)."""
    return cast(SessionValidationResult, getattr(request.state, "auth", SessionValidationResult()))


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
ConfigDep = Annotated[Config, Depends(get_config)]
SessionAuthDep = Annotated[SessionValidationResult, Depends(get_session_auth)]
