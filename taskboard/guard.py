from typing import Optional

from fastapi.security.utils import get_authorization_scheme_param

from .auth import AuthService
from .errors import missing_token
from .models import Identity


class AccessGuard:
    """Turns an ``Authorization`` header into an authenticated Identity.

    No usable bearer token -> AuthError 401; a token that fails verification
    -> AuthError 403 (raised by AuthService.verify_token).
    """

    def __init__(self, auth: AuthService) -> None:
        self._auth = auth

    def authenticate(self, authorization: Optional[str]) -> Identity:
        scheme, token = get_authorization_scheme_param(authorization)
        if not authorization or scheme.lower() != "bearer" or not token:
            raise missing_token()
        claims = self._auth.verify_token(token)
        return Identity(id=claims.id, username=claims.username)
