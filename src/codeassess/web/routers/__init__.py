from codeassess.web.routers.auth import router as auth_router
from codeassess.web.routers.invitations import router as invitations_router

__all__ = [
    "auth_router",
    "invitations_router",
]
