from __future__ import annotations

from abc import ABC, abstractmethod
from functools import lru_cache
from threading import RLock
from typing import Dict, List, Optional

from bson import ObjectId

from .errors import BadRequest
from .models import TaskEntity
from .schemas import TaskCreate, TaskUpdate
from .settings import get_settings
from .utils import utc_now


# PUBLIC_INTERFACE
def parse_task_id(raw: Optional[str]) -> str:
    """
    Validate a client-supplied task id before it reaches the store.

    Raises:
        BadRequest if the id is missing or not a well-formed ObjectId.
    """
    if not raw:
        raise BadRequest("Task ID is required")
    if not ObjectId.is_valid(raw):
        raise BadRequest("Invalid task ID")
    return str(ObjectId(raw))


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Abstract repository contract for task storage backends.

    Every operation is scoped by ``owner``, the verified subject of the
    caller. A task owned by someone else behaves exactly like a missing one.
    """

    @abstractmethod
    def list(self, owner: str) -> List[TaskEntity]:
        """Return all tasks of ``owner``, newest created first."""

    @abstractmethod
    def create(self, owner: str, data: TaskCreate) -> TaskEntity:
        """Create and return a new task owned by ``owner``."""

    @abstractmethod
    def update(self, owner: str, task_id: str, data: TaskUpdate) -> bool:
        """Apply the provided fields. Return False if no task of ``owner`` matched."""

    @abstractmethod
    def set_completed(self, owner: str, task_id: str, completed: bool) -> bool:
        """Set the completion flag. Return False if no task of ``owner`` matched."""

    @abstractmethod
    def delete(self, owner: str, task_id: str) -> bool:
        """Delete a task. Return True if deleted, False if no task of ``owner`` matched."""


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}

    def _owned(self, owner: str, task_id: str) -> Optional[TaskEntity]:
        item = self._items.get(task_id)
        if item is None or item["user_id"] != owner:
            return None
        return item

    def _apply(self, owner: str, task_id: str, changes: dict) -> bool:
        with self._lock:
            existing = self._owned(owner, task_id)
            if existing is None:
                return False
            updated = existing.copy()
            updated.update(changes)
            updated["updated_at"] = max(utc_now(), existing["updated_at"])
            self._items[task_id] = updated
            return True

    def list(self, owner: str) -> List[TaskEntity]:
        with self._lock:
            # Reverse insertion order first so ties on created_at stay newest first
            owned = [t.copy() for t in reversed(list(self._items.values())) if t["user_id"] == owner]
        return sorted(owned, key=lambda t: t["created_at"], reverse=True)

    def create(self, owner: str, data: TaskCreate) -> TaskEntity:
        now = utc_now()
        entity: TaskEntity = {
            "id": str(ObjectId()),
            "user_id": owner,
            "title": data.title,
            "description": data.description,
            "completed": data.completed,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def update(self, owner: str, task_id: str, data: TaskUpdate) -> bool:
        return self._apply(owner, task_id, data.changes())

    def set_completed(self, owner: str, task_id: str, completed: bool) -> bool:
        return self._apply(owner, task_id, {"completed": completed})

    def delete(self, owner: str, task_id: str) -> bool:
        with self._lock:
            if self._owned(owner, task_id) is None:
                return False
            del self._items[task_id]
            return True


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_repository() -> TaskRepository:
    """
    Return the process-wide repository selected by settings.
    - memory: InMemoryTaskRepository
    - mongo: MongoTaskRepository on the shared MongoClient
    """
    settings = get_settings()
    if settings.persistence_backend == "mongo":
        from .db import MongoTaskRepository, get_database

        return MongoTaskRepository(get_database())
    return InMemoryTaskRepository()
