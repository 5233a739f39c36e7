"""
Todo Service for the To-do Tracker.

This module owns every read and write of the task store. Views never touch
the ORM directly; they call TodoService and translate its exceptions into
HTTP responses.

Upsert Convention:
-----------------
A task submitted without an identifier (absent, null or 0) is a creation
request; any other identifier is an update of the existing record. The
decision is made once, by classify_upsert(), and carried as an explicit
Create / Update value instead of re-comparing against the sentinel.

Atomicity:
---------
Each mutation runs in a single database transaction. Id assignment, field
replacement and the comment collection swap are committed together, so
concurrent readers see either the old task or the new one.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Union

from django.db import transaction
from django.utils import timezone

from .models import Todo, TodoComment, TodoStatus

logger = logging.getLogger(__name__)

UNASSIGNED_ID = 0


# ==================== Error Codes ====================

class ErrorCode(Enum):
    """Error codes reported in API error bodies."""
    SUCCESS = "SUCCESS"
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_UPSTREAM = "ERR_UPSTREAM"
    ERR_UPSTREAM_UNAVAILABLE = "ERR_UPSTREAM_UNAVAILABLE"


class TodoServiceError(Exception):
    """Base class for errors raised by TodoService."""

    code = ErrorCode.ERR_VALIDATION

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict:
        result = {
            'success': False,
            'error_code': self.code.value,
            'message': self.message
        }
        if self.field:
            result['field'] = self.field
        return result


class TodoValidationError(TodoServiceError):
    """A required field is missing or holds an unacceptable value."""

    code = ErrorCode.ERR_VALIDATION


class TodoNotFound(TodoServiceError):
    """No task exists with the requested identifier."""

    code = ErrorCode.ERR_NOT_FOUND

    def __init__(self, todo_id: int):
        self.todo_id = todo_id
        super().__init__(f"Todo with id {todo_id} does not exist", field='id')


# ==================== Upsert Action ====================

@dataclass(frozen=True)
class Create:
    """Insert a new task; the store assigns the identifier."""


@dataclass(frozen=True)
class Update:
    """Replace the mutable fields of the task with this identifier."""
    todo_id: int


UpsertAction = Union[Create, Update]


def classify_upsert(todo_id: Optional[int]) -> UpsertAction:
    """Decide whether an incoming identifier means create or update."""
    if todo_id is None or todo_id == UNASSIGNED_ID:
        return Create()
    return Update(todo_id=todo_id)


# ==================== Service ====================

class TodoService:
    """
    Task store operations.

    All methods are safe to call from concurrent request workers; the
    database transaction is the unit of isolation.
    """

    def find_all(self) -> List[Todo]:
        """Return every task ordered by id."""
        return list(Todo.objects.prefetch_related('comments').order_by('id'))

    def find_by_id(self, todo_id: int) -> Todo:
        try:
            return Todo.objects.prefetch_related('comments').get(pk=todo_id)
        except Todo.DoesNotExist:
            raise TodoNotFound(todo_id)

    def delete_by_id(self, todo_id: int) -> bool:
        """
        Delete a task and its comments.

        Returns:
            True when a task was removed, False when none had that id
        """
        with transaction.atomic():
            _, per_model = Todo.objects.filter(pk=todo_id).delete()
        deleted = per_model.get(Todo._meta.label, 0) > 0
        if deleted:
            logger.info("Deleted todo %s", todo_id)
        else:
            logger.debug("Delete requested for missing todo %s", todo_id)
        return deleted

    def create_or_update(self, data: Dict) -> Todo:
        """
        Insert a new task or replace an existing one.

        Args:
            data: Task fields (id, title, description, due_date,
                  completion_date, status, comments)

        Returns:
            The persisted task with its identifier populated

        Raises:
            TodoValidationError: title empty, due_date missing or status
                                 outside the vocabulary
            TodoNotFound: update requested for an id that does not exist
        """
        action = classify_upsert(data.get('id'))
        fields = self._clean(data)
        comments = data.get('comments') or []

        with transaction.atomic():
            if isinstance(action, Update):
                todo = Todo.objects.select_for_update().filter(pk=action.todo_id).first()
                if todo is None:
                    raise TodoNotFound(action.todo_id)
                for name, value in fields.items():
                    setattr(todo, name, value)
                todo.save()
                todo.comments.all().delete()
            else:
                todo = Todo.objects.create(**fields)
            self._add_comments(todo, comments)
            # read back before commit so a concurrent delete cannot hide the result
            persisted = Todo.objects.prefetch_related('comments').get(pk=todo.pk)

        logger.info(
            "%s todo %s (status=%s)",
            'Updated' if isinstance(action, Update) else 'Created',
            todo.pk,
            todo.status
        )
        return persisted

    def get_status_vocabulary(self) -> List[str]:
        """Return the allowed status values in workflow order."""
        return list(TodoStatus.values)

    # ---------- helpers ----------

    def _clean(self, data: Dict) -> Dict:
        title = (data.get('title') or '').strip()
        if not title:
            raise TodoValidationError("Title cannot be empty", field='title')

        due_date = data.get('due_date')
        if due_date is None:
            raise TodoValidationError("Due date is required", field='due_date')

        status = data.get('status')
        if status not in TodoStatus.values:
            raise TodoValidationError(
                f"Status must be one of: {', '.join(TodoStatus.values)}",
                field='status'
            )

        # completion_date only ever accompanies a done task
        completion_date = data.get('completion_date')
        if status == TodoStatus.DONE:
            completion_date = completion_date or date.today()
        else:
            completion_date = None

        return {
            'title': title,
            'description': data.get('description') or '',
            'due_date': due_date,
            'completion_date': completion_date,
            'status': status,
        }

    def _add_comments(self, todo: Todo, comments: List[Dict]) -> None:
        now = timezone.now()
        TodoComment.objects.bulk_create([
            TodoComment(
                todo=todo,
                author=comment.get('author') or '',
                text=comment.get('text') or '',
                timestamp=comment.get('timestamp') or now,
            )
            for comment in comments
        ])
