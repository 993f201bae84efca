from __future__ import annotations

from datetime import datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    Storage-neutral representation of a task.

    Fields:
    - id: store-assigned identifier (24 hex chars, ObjectId)
    - user_id: subject of the owner; never changes after creation
    - title: 1..200 chars, trimmed on input via schemas
    - description: optional text, at most 500 chars
    - completed: completion flag, never None
    - created_at: UTC creation timestamp
    - updated_at: UTC timestamp of the last mutation
    """

    id: str
    user_id: str
    title: str
    description: Optional[str]
    completed: bool
    created_at: datetime
    updated_at: datetime
