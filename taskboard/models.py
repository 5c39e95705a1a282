from datetime import UTC, date, datetime, timedelta
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_utc() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def next_timestamp(previous: datetime) -> datetime:
    """Current time, nudged forward so it is strictly later than ``previous``."""
    now = now_utc()
    if now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


class CamelModel(BaseModel):
    # snake_case in Python, camelCase on the wire (FastAPI dumps by alias)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Stored records ---------------------------------------------------------


class UserRecord(CamelModel):
    """A registered user as held by the credential store (includes the hash)."""

    id: int
    username: str
    password_hash: str
    email: str
    full_name: str
    created_at: datetime
    updated_at: datetime

    def public(self) -> "UserPublic":
        return UserPublic.model_validate(self.model_dump(exclude={"password_hash"}))


class Task(CamelModel):
    id: int
    owner_id: int
    task_name: str
    detail: str = ""
    due_date: Optional[date] = None
    progress: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "id": 1,
                    "ownerId": 1,
                    "taskName": "Write spec",
                    "detail": "",
                    "dueDate": "2025-01-01",
                    "progress": "Not Started",
                    "createdAt": "2025-01-01T09:00:00Z",
                    "updatedAt": "2025-01-01T09:00:00Z",
                }
            ]
        },
    )


# --- Task payloads ----------------------------------------------------------
# Loosely typed on purpose: the service validates and reports rule violations as 400s.


class TaskCreate(CamelModel):
    task_name: Optional[str] = None
    detail: Optional[str] = None
    due_date: Optional[str] = None
    progress: Optional[str] = None
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"taskName": "Write spec", "dueDate": "2025-01-01", "progress": "Not Started"},
                {"taskName": "Buy milk", "detail": "2 litres", "dueDate": "2025-02-01"},
            ]
        },
    )


class TaskUpdate(CamelModel):
    """Partial update: only fields present in the request body are applied."""

    task_name: Optional[str] = None
    detail: Optional[str] = None
    due_date: Optional[str] = None
    progress: Optional[str] = None
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"progress": "Completed"},
                {"taskName": "New name", "dueDate": "2025-03-01"},
            ]
        },
    )


class TaskDeleted(BaseModel):
    message: str
    task: Task


class TaskSummary(CamelModel):
    total: int
    completed: int
    by_progress: Dict[str, int] = Field(default_factory=dict)


# --- User / Auth schemas ----------------------------------------------------


class UserPublic(CamelModel):
    id: int
    username: str
    email: str
    full_name: str
    created_at: datetime
    updated_at: datetime


class RegisterRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "username": "alice",
                    "password": "secret1",
                    "email": "a@x.com",
                    "fullName": "Alice A",
                }
            ]
        },
    )


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(CamelModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"fullName": "Alice Anderson"},
                {"currentPassword": "secret1", "newPassword": "secret2"},
            ]
        },
    )


class TokenClaims(BaseModel):
    """Identity fields embedded in a bearer token."""

    id: int
    username: str
    email: str


class Identity(BaseModel):
    """Authenticated caller attached to the request by the access guard."""

    id: int
    username: str


class AuthResponse(BaseModel):
    token: str
    user: UserPublic
    model_config = ConfigDict(
        json_schema_extra={"examples": [{"token": "<jwt>", "user": {"id": 1, "username": "alice"}}]}
    )


class ProfileResponse(BaseModel):
    message: str
    user: UserPublic


class MessageResponse(BaseModel):
    message: str
