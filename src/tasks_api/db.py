from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, List, Mapping, Optional

from bson import ObjectId
from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .errors import ConfigurationError, StoreError
from .models import TaskEntity
from .repositories import TaskRepository
from .schemas import TaskCreate, TaskUpdate
from .settings import get_settings
from .utils import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Fields:
    collection: str = "tasks"
    id: str = "_id"
    user_id: str = "userId"
    title: str = "title"
    description: str = "description"
    completed: str = "completed"
    created_at: str = "createdAt"
    updated_at: str = "updatedAt"


_F = _Fields()

_client: Optional[MongoClient] = None
_client_lock = Lock()


# PUBLIC_INTERFACE
def get_client() -> MongoClient:
    """
    Return the process-wide MongoClient, creating it on first use.

    The client owns a connection pool shared by all requests; it is closed by
    close_client() at application shutdown, never per request.
    """
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                settings = get_settings()
                if not settings.mongodb_uri:
                    raise ConfigurationError("MONGODB_URI is not set")
                logger.info("connecting to MongoDB database %r", settings.mongodb_db_name)
                _client = MongoClient(settings.mongodb_uri, tz_aware=True)
    return _client


# PUBLIC_INTERFACE
def get_database() -> Database:
    return get_client()[get_settings().mongodb_db_name]


# PUBLIC_INTERFACE
def close_client() -> None:
    global _client
    with _client_lock:
        if _client is not None:
            _client.close()
            _client = None
            logger.info("MongoDB client closed")


class MongoTaskRepository(TaskRepository):
    """
    Task repository on a MongoDB collection.

    Each operation is a single document operation (insert_one, update_one
    with $set, delete_one) matched on both _id and userId.
    """

    def __init__(self, database: Database) -> None:
        self._tasks: Collection = database[_F.collection]

    def _doc_to_entity(self, doc: Mapping[str, Any]) -> TaskEntity:
        return {
            "id": str(doc[_F.id]),
            "user_id": str(doc[_F.user_id]),
            "title": str(doc.get(_F.title) or ""),
            "description": doc.get(_F.description),
            "completed": bool(doc.get(_F.completed, False)),
            "created_at": doc[_F.created_at],
            "updated_at": doc[_F.updated_at],
        }

    def _owned(self, owner: str, task_id: str) -> dict:
        return {_F.id: ObjectId(task_id), _F.user_id: owner}

    def list(self, owner: str) -> List[TaskEntity]:
        try:
            cursor = self._tasks.find({_F.user_id: owner}).sort(_F.created_at, DESCENDING)
            return [self._doc_to_entity(doc) for doc in cursor]
        except PyMongoError as exc:
            raise StoreError("failed to list tasks") from exc

    def create(self, owner: str, data: TaskCreate) -> TaskEntity:
        now = utc_now()
        doc = {
            _F.user_id: owner,
            _F.title: data.title,
            _F.completed: data.completed,
            _F.created_at: now,
            _F.updated_at: now,
        }
        if data.description is not None:
            doc[_F.description] = data.description
        try:
            result = self._tasks.insert_one(doc)
        except PyMongoError as exc:
            raise StoreError("failed to create task") from exc
        doc[_F.id] = result.inserted_id
        return self._doc_to_entity(doc)

    def _set(self, owner: str, task_id: str, changes: dict) -> bool:
        # $max keeps updatedAt from moving backwards if the clock does
        update: dict = {"$max": {_F.updated_at: utc_now()}}
        fields = {getattr(_F, key): value for key, value in changes.items()}
        if fields:
            update["$set"] = fields
        try:
            result = self._tasks.update_one(self._owned(owner, task_id), update)
        except PyMongoError as exc:
            raise StoreError("failed to update task") from exc
        return result.matched_count > 0

    def update(self, owner: str, task_id: str, data: TaskUpdate) -> bool:
        return self._set(owner, task_id, data.changes())

    def set_completed(self, owner: str, task_id: str, completed: bool) -> bool:
        return self._set(owner, task_id, {"completed": completed})

    def delete(self, owner: str, task_id: str) -> bool:
        try:
            result = self._tasks.delete_one(self._owned(owner, task_id))
        except PyMongoError as exc:
            raise StoreError("failed to delete task") from exc
        return result.deleted_count > 0
