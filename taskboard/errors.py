"""Domain errors raised by the services and mapped to HTTP responses in api/errors.py."""

from typing import Any, List, Optional


class TaskboardError(Exception):
    """Base class: a message safe to show the client plus an HTTP status."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[List[Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        return self.message


class ValidationError(TaskboardError):
    """Malformed or missing input; ``details`` lists every unmet rule."""

    status_code = 400

    def __init__(self, errors: List[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        super().__init__("; ".join(errors), details=list(errors))
        self.errors = list(errors)


class ConflictError(TaskboardError):
    """Uniqueness violation (username or email already taken)."""

    status_code = 400


class AuthError(TaskboardError):
    # 401 missing token, 403 invalid token, 400 bad credentials
    status_code = 401


class NotFoundError(TaskboardError):
    """Resource absent, or owned by someone else."""

    status_code = 404


# Shared messages; login failures must read the same whatever the cause.
INVALID_CREDENTIALS = "invalid credentials"
MISSING_TOKEN = "missing token"
INVALID_TOKEN = "invalid token"
TASK_NOT_FOUND = "task not found"
USER_NOT_FOUND = "user not found"


def missing_token() -> AuthError:
    return AuthError(MISSING_TOKEN, status_code=401)


def invalid_token() -> AuthError:
    return AuthError(INVALID_TOKEN, status_code=403)


def invalid_credentials() -> AuthError:
    return AuthError(INVALID_CREDENTIALS, status_code=400)
