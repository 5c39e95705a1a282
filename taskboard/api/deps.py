from typing import Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..auth import AuthService
from ..guard import AccessGuard
from ..models import Identity
from ..tasks import TaskService

# Documents the scheme in OpenAPI; the guard itself reads and judges the header.
bearer_scheme = HTTPBearer(auto_error=False, description="Token from /auth/register or /auth/login")


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_access_guard(request: Request) -> AccessGuard:
    return request.app.state.access_guard


def parse_progress(progress: Optional[str] = Query(None)) -> Optional[str]:
    # `?progress=` (empty) means no filter; stored labels are never empty
    if progress is None or not progress.strip():
        return None
    return progress


def get_current_identity(
    request: Request,
    _credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),  # noqa: B008
    guard: AccessGuard = Depends(get_access_guard),  # noqa: B008
) -> Identity:
    """Reject the request (401/403) unless it carries a valid bearer token."""
    identity = guard.authenticate(request.headers.get("Authorization"))
    request.state.identity = identity
    return identity
