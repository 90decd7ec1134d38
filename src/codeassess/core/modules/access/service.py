from codeassess.core.core import Service
from codeassess.core.modules.session.models import SessionValidationResult, SessionWithUser
from codeassess.core.modules.user.models import User
from codeassess.errors import AccessDeniedError, AuthenticationError


class AccessService(Service):
    def ensure_authenticated(self, result: SessionValidationResult) -> SessionWithUser:
        """Ensure the request carries a valid session, raise AuthenticationError if not."""
        if result.session is None or result.user is None:
            raise AuthenticationError
        return SessionWithUser(session=result.session, user=result.user)

    def ensure_admin(self, result: SessionValidationResult) -> User:
        """Ensure the authenticated user has the admin role, raise AccessDeniedError if not."""
        user = self.ensure_authenticated(result).user
        if not user.is_admin:
            raise AccessDeniedError("Admin privileges required")
        return user
