"""
HTTP client for the tasks API and a small in-memory task store on top of it.

The store only changes its list after the server accepted a change, so a
failed call leaves it exactly as the server last reported.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx

from .schemas import TaskCreate

logger = logging.getLogger(__name__)

AUTH_REQUIRED_MESSAGE = "Authentication required. Please sign in."
ENTRY_PATH = "/"


# PUBLIC_INTERFACE
class ApiClientError(Exception):
    """A request to the tasks API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationRequired(ApiClientError):
    def __init__(self, status_code: Optional[int] = None) -> None:
        super().__init__(AUTH_REQUIRED_MESSAGE, status_code)


@dataclass(frozen=True)
class Task:
    id: str
    user_id: str
    title: str
    completed: bool
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=data["_id"],
            user_id=data["userId"],
            title=data["title"],
            description=data.get("description"),
            completed=bool(data["completed"]),
            created_at=datetime.fromisoformat(data["createdAt"].replace("Z", "+00:00")),
            updated_at=datetime.fromisoformat(data["updatedAt"].replace("Z", "+00:00")),
        )


# PUBLIC_INTERFACE
class TasksClient:
    """
    Thin wrapper over ``/api/tasks``.

    ``token_provider`` returns the current identity token (or None when the
    user is signed out); it is called before every request.
    """

    def __init__(self, http: httpx.Client, token_provider: Callable[[], Optional[str]]) -> None:
        self._http = http
        self._token_provider = token_provider

    def _request(self, method: str, params: Optional[dict] = None, json: Any = None) -> dict:
        token = self._token_provider()
        if not token:
            raise AuthenticationRequired()
        response = self._http.request(
            method,
            "/api/tasks",
            params=params,
            json=json,
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.status_code == 401:
            raise AuthenticationRequired(401)
        if response.is_error:
            raise ApiClientError(_error_message(response), response.status_code)
        return response.json()

    def list_tasks(self) -> List[Task]:
        return [Task.from_json(t) for t in self._request("GET")["tasks"]]

    def create_task(self, title: str, completed: bool = False, description: Optional[str] = None) -> Task:
        """Create a task. Raises pydantic.ValidationError before any request if the payload is invalid."""
        data = TaskCreate(title=title, completed=completed, description=description)
        body = self._request("POST", json=data.model_dump(exclude_none=True))
        return Task.from_json(body["task"])

    def update_task(self, task_id: str, **changes: Any) -> None:
        self._request("PUT", params={"id": task_id}, json=changes)

    def mark_done(self, task_id: str, completed: bool) -> None:
        self._request("PATCH", params={"id": task_id}, json={"completed": completed})

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", params={"id": task_id})


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Request failed with status {response.status_code}"
    details = body.get("details") if isinstance(body, dict) else None
    if isinstance(details, list) and details:
        return "; ".join(f"{d.get('field')}: {d.get('message')}" for d in details if isinstance(d, dict))
    if isinstance(details, str):
        return details
    return body.get("error", "Request failed") if isinstance(body, dict) else "Request failed"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ErrorNotice:
    message: str
    redirect_to: Optional[str] = None


# PUBLIC_INTERFACE
def handle_api_error(exc: Exception) -> ErrorNotice:
    """Normalize any client failure into one message; auth failures also ask for a redirect."""
    if isinstance(exc, AuthenticationRequired):
        return ErrorNotice("Please sign in to continue", redirect_to=ENTRY_PATH)
    if isinstance(exc, ApiClientError):
        return ErrorNotice(exc.message)
    if isinstance(exc, httpx.HTTPError):
        return ErrorNotice("Network error, please try again")
    return ErrorNotice("An unexpected error occurred")


# PUBLIC_INTERFACE
class TaskStore:
    """
    Client-side list of the user's tasks.

    status is one of 'idle', 'loading', 'done', 'error'. Mutations are
    applied to ``tasks`` only after the server call succeeded.
    """

    def __init__(self, client: TasksClient) -> None:
        self.client = client
        self.tasks: List[Task] = []
        self.status = "idle"
        self.error: Optional[str] = None

    def fetch(self) -> None:
        self.status = "loading"
        self.error = None
        try:
            self.tasks = self.client.list_tasks()
        except (ApiClientError, httpx.HTTPError) as exc:
            self.error = handle_api_error(exc).message
            self.status = "error"
            logger.info("task fetch failed: %s", self.error)
            return
        self.status = "done"

    def add(self, title: str, completed: bool = False) -> Task:
        task = self.client.create_task(title, completed=completed)
        self.tasks = [task, *self.tasks]
        return task

    def toggle(self, task_id: str, completed: bool) -> None:
        self.client.mark_done(task_id, completed)
        self.tasks = [
            replace(t, completed=completed) if t.id == task_id else t for t in self.tasks
        ]

    def remove(self, task_id: str) -> None:
        self.client.delete_task(task_id)
        self.tasks = [t for t in self.tasks if t.id != task_id]

    def clear_error(self) -> None:
        self.error = None
