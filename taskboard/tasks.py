"""Ownership-scoped task operations.

Every method takes the caller's user id first and never looks outside that
user's tasks: a task owned by someone else is reported exactly like a
missing one.
"""

import logging
import re
from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional

from .config import Settings
from .errors import TASK_NOT_FOUND, NotFoundError, ValidationError, invalid_token
from .ids import IdGenerator
from .logging_utils import kv
from .models import Task, TaskCreate, TaskSummary, TaskUpdate, now_utc
from .store import CredentialStore, TaskStore

logger = logging.getLogger(__name__)

DUE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_due_date(value: Optional[str]) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` date; None/blank means no due date."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if not DUE_DATE_RE.match(value):
        raise ValueError(value)
    return date.fromisoformat(value)


def _check_fields(fields: Dict[str, Any], errors: List[str]) -> Dict[str, Any]:
    """Validate the task fields present in ``fields``; returns normalised values."""
    clean: Dict[str, Any] = {}
    if "task_name" in fields:
        name = fields["task_name"]
        if name is None or not name.strip():
            errors.append("taskName is required")
        else:
            clean["task_name"] = name
    if "detail" in fields:
        clean["detail"] = fields["detail"] or ""
    if "due_date" in fields:
        try:
            clean["due_date"] = parse_due_date(fields["due_date"])
        except ValueError:
            errors.append("dueDate must be a date in YYYY-MM-DD format")
    if "progress" in fields:
        progress = fields["progress"]
        if progress is None or not progress.strip():
            errors.append("progress must be a non-empty string")
        else:
            clean["progress"] = progress
    return clean


class TaskService:
    def __init__(
        self,
        tasks: TaskStore,
        ids: IdGenerator,
        users: CredentialStore,
        settings: Settings,
    ) -> None:
        self._tasks = tasks
        self._ids = ids
        self._users = users
        self._settings = settings

    def list(self, user_id: int, progress: Optional[str] = None) -> List[Task]:
        return self._tasks.list(owner_id=user_id, progress=progress)

    def get(self, user_id: int, task_id: int) -> Task:
        task = self._tasks.get(task_id, owner_id=user_id)
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    def create(self, user_id: int, data: TaskCreate) -> Task:
        errors: List[str] = []
        fields = data.model_dump()
        if fields["progress"] is None:
            fields.pop("progress")
        clean = _check_fields(fields, errors)
        if errors:
            raise ValidationError(errors)
        # A token can outlive the user it names (in-memory stores reset on restart).
        if self._users.get(user_id) is None:
            raise invalid_token()

        now = now_utc()
        task = self._tasks.add(
            Task(
                id=self._ids.next_id("task"),
                owner_id=user_id,
                task_name=clean["task_name"],
                detail=clean.get("detail", ""),
                due_date=clean.get("due_date"),
                progress=clean.get("progress", self._settings.DEFAULT_PROGRESS),
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("task created %s", kv(task_id=task.id, owner_id=user_id))
        return task

    def update(self, user_id: int, task_id: int, patch: TaskUpdate) -> Task:
        # Ownership first: a stranger's task must 404 even when the patch is invalid.
        self.get(user_id, task_id)
        errors: List[str] = []
        changes = _check_fields(patch.model_dump(exclude_unset=True), errors)
        if errors:
            raise ValidationError(errors)
        updated = self._tasks.update(task_id, changes, owner_id=user_id)
        if updated is None:
            # deleted between the lookup and the write
            raise NotFoundError(TASK_NOT_FOUND)
        logger.info(
            "task updated %s",
            kv(task_id=task_id, owner_id=user_id, fields=",".join(sorted(changes)) or "-"),
        )
        return updated

    def delete(self, user_id: int, task_id: int) -> Task:
        removed = self._tasks.delete(task_id, owner_id=user_id)
        if removed is None:
            raise NotFoundError(TASK_NOT_FOUND)
        logger.info("task deleted %s", kv(task_id=task_id, owner_id=user_id))
        return removed

    def summary(self, user_id: int) -> TaskSummary:
        items = self._tasks.list(owner_id=user_id)
        by_progress = Counter(t.progress for t in items)
        return TaskSummary(
            total=len(items),
            completed=by_progress.get(self._settings.COMPLETED_PROGRESS, 0),
            by_progress=dict(by_progress),
        )
