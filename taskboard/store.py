"""In-memory stores for users and tasks.

Each store owns one lock; every read and write goes through it, so a
uniqueness check and the insert that relies on it can never interleave
with another writer.
"""

import threading
from typing import Any, Dict, List, Optional

from .errors import ConflictError
from .models import Task, UserRecord, next_timestamp


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: Dict[int, UserRecord] = {}
        self._by_username: Dict[str, int] = {}
        self._by_email: Dict[str, int] = {}

    def add(self, user: UserRecord) -> UserRecord:
        """Insert a new user; raises ConflictError if username or email is taken."""
        email = normalize_email(user.email)
        with self._lock:
            if user.username in self._by_username:
                raise ConflictError("username already registered")
            if email and email in self._by_email:
                raise ConflictError("email already registered")
            self._users[user.id] = user
            self._by_username[user.username] = user.id
            if email:
                self._by_email[email] = user.id
        return user

    def get(self, user_id: int) -> Optional[UserRecord]:
        with self._lock:
            return self._users.get(user_id)

    def get_by_username(self, username: str) -> Optional[UserRecord]:
        with self._lock:
            user_id = self._by_username.get(username)
            return self._users.get(user_id) if user_id is not None else None

    def username_taken(self, username: str) -> bool:
        with self._lock:
            return username in self._by_username

    def email_taken(self, email: str, *, exclude_id: Optional[int] = None) -> bool:
        with self._lock:
            owner = self._by_email.get(normalize_email(email))
            return owner is not None and owner != exclude_id

    def update(self, user_id: int, **changes: Any) -> Optional[UserRecord]:
        """Apply profile changes; returns the new record or None if the user is unknown.

        An email change is re-checked against every other user under the same lock.
        """
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            old_email = normalize_email(user.email)
            new_email = old_email
            if changes.get("email") is not None:
                new_email = normalize_email(changes["email"])
                owner = self._by_email.get(new_email)
                if owner is not None and owner != user_id:
                    raise ConflictError("email already registered")
                changes["email"] = new_email

            updated = user.model_copy(
                update={**changes, "updated_at": next_timestamp(user.updated_at)}
            )
            self._users[user_id] = updated
            if new_email != old_email:
                self._by_email.pop(old_email, None)
                self._by_email[new_email] = user_id
            return updated

    def count(self) -> int:
        with self._lock:
            return len(self._users)


class TaskStore:
    """Tasks keyed by id in insertion order; every lookup is scoped to an owner."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: Dict[int, Task] = {}

    def add(self, task: Task) -> Task:
        with self._lock:
            self._tasks[task.id] = task
        return task

    def list(self, *, owner_id: int, progress: Optional[str] = None) -> List[Task]:
        with self._lock:
            items = [t for t in self._tasks.values() if t.owner_id == owner_id]
        if progress is not None:
            items = [t for t in items if t.progress == progress]
        return items

    def _owned(self, task_id: int, owner_id: int) -> Optional[Task]:
        # caller holds the lock
        task = self._tasks.get(task_id)
        if task is None or task.owner_id != owner_id:
            return None
        return task

    def get(self, task_id: int, *, owner_id: int) -> Optional[Task]:
        with self._lock:
            return self._owned(task_id, owner_id)

    def update(self, task_id: int, changes: Dict[str, Any], *, owner_id: int) -> Optional[Task]:
        """Merge ``changes`` over the owned task; None if missing or not owned."""
        with self._lock:
            task = self._owned(task_id, owner_id)
            if task is None:
                return None
            updated = task.model_copy(
                update={**changes, "updated_at": next_timestamp(task.updated_at)}
            )
            self._tasks[task_id] = updated
            return updated

    def delete(self, task_id: int, *, owner_id: int) -> Optional[Task]:
        """Remove the owned task and return it; None if missing or not owned."""
        with self._lock:
            if self._owned(task_id, owner_id) is None:
                return None
            return self._tasks.pop(task_id)

    def count(self) -> int:
        with self._lock:
            return len(self._tasks)
