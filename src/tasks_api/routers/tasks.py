from __future__ import annotations

import json
import logging
from typing import Any, Optional, Type

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel

from ..auth import AuthResult, require_user
from ..errors import NotFound, ValidationFailed
from ..repositories import TaskRepository, get_repository, parse_task_id
from ..schemas import (
    ErrorOut,
    MessageOut,
    TaskCreate,
    TaskEnvelope,
    TaskListEnvelope,
    TaskMarkDone,
    TaskOut,
    TaskUpdate,
)
from ..validation import FieldError, validate_create, validate_mark_done, validate_update

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    responses={401: {"model": ErrorOut, "description": "Valid authentication token required"}},
)

TASK_NOT_FOUND = "Task not found or unauthorized"


def _get_repo(repo: TaskRepository = Depends(get_repository)) -> TaskRepository:
    """
    Dependency wrapper for repository to keep signatures clean.
    """
    return repo


def _task_id(id: Optional[str] = Query(None, description="Task identifier (24 hex characters)")) -> str:
    return parse_task_id(id)


async def _json_body(request: Request) -> Any:
    """
    Decode the request body as JSON; an empty body is None.

    Declared after the auth and id dependencies so a caller without a valid
    token gets 401 whatever the body contains.
    """
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as exc:
        raise ValidationFailed([FieldError("body", "Request body must be valid JSON")]) from exc


def _body_doc(model: Type[BaseModel]) -> dict:
    # The body is read by _json_body, so describe it for the OpenAPI document here
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TaskListEnvelope,
    summary="List Tasks",
    description="List every task owned by the caller, newest first.",
    responses={200: {"description": "List retrieved successfully"}},
)
def list_tasks(
    user: AuthResult = Depends(require_user),
    repo: TaskRepository = Depends(_get_repo),
) -> TaskListEnvelope:
    items = repo.list(user.user_id)
    return TaskListEnvelope(tasks=[TaskOut(**it) for it in items])  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task owned by the caller and return it with its assigned id.",
    responses={
        201: {"description": "Task created successfully"},
        400: {"model": ErrorOut, "description": "Validation error"},
    },
    openapi_extra=_body_doc(TaskCreate),
)
def create_task(
    user: AuthResult = Depends(require_user),
    payload: Any = Depends(_json_body),
    repo: TaskRepository = Depends(_get_repo),
) -> TaskEnvelope:
    result = validate_create(payload)
    if not result.ok:
        raise ValidationFailed(result.errors)
    created = repo.create(user.user_id, result.value)
    logger.info("task %s created", created["id"])
    return TaskEnvelope(task=TaskOut(**created))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "",
    response_model=MessageOut,
    summary="Update Task",
    description="Update the title, description and/or completion flag of one of the caller's tasks.",
    responses={
        200: {"description": "Task updated"},
        400: {"model": ErrorOut, "description": "Missing/invalid id or validation error"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
    openapi_extra=_body_doc(TaskUpdate),
)
def update_task(
    user: AuthResult = Depends(require_user),
    task_id: str = Depends(_task_id),
    payload: Any = Depends(_json_body),
    repo: TaskRepository = Depends(_get_repo),
) -> MessageOut:
    result = validate_update(payload)
    if not result.ok:
        raise ValidationFailed(result.errors)
    if not repo.update(user.user_id, task_id, result.value):
        raise NotFound(TASK_NOT_FOUND)
    return MessageOut(message="Task updated successfully")


# PUBLIC_INTERFACE
@router.patch(
    "",
    response_model=MessageOut,
    summary="Mark Task Done",
    description="Set the completion flag of one of the caller's tasks.",
    responses={
        200: {"description": "Task updated"},
        400: {"model": ErrorOut, "description": "Missing/invalid id or validation error"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
    openapi_extra=_body_doc(TaskMarkDone),
)
def mark_task_done(
    user: AuthResult = Depends(require_user),
    task_id: str = Depends(_task_id),
    payload: Any = Depends(_json_body),
    repo: TaskRepository = Depends(_get_repo),
) -> MessageOut:
    result = validate_mark_done(payload)
    if not result.ok:
        raise ValidationFailed(result.errors)
    if not repo.set_completed(user.user_id, task_id, result.value.completed):
        raise NotFound(TASK_NOT_FOUND)
    return MessageOut(message="Task updated successfully")


# PUBLIC_INTERFACE
@router.delete(
    "",
    response_model=MessageOut,
    summary="Delete Task",
    description="Delete one of the caller's tasks.",
    responses={
        200: {"description": "Task deleted"},
        400: {"model": ErrorOut, "description": "Missing or invalid id"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def delete_task(
    user: AuthResult = Depends(require_user),
    task_id: str = Depends(_task_id),
    repo: TaskRepository = Depends(_get_repo),
) -> MessageOut:
    """
    Delete a task. Returns 404 both when it does not exist and when it
    belongs to someone else.
    """
    if not repo.delete(user.user_id, task_id):
        raise NotFound(TASK_NOT_FOUND)
    return MessageOut(message="Task deleted successfully")
