from __future__ import annotations

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool, field_validator

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500


def _check_title(v: Optional[str]) -> str:
    s = (v or "").strip()
    if not s:
        raise ValueError("Title is required")
    if len(s) > TITLE_MAX_LENGTH:
        raise ValueError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return s


def _check_description(v: Optional[str]) -> Optional[str]:
    if v is not None and len(v) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
    return v


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "completed": False,
            }
        },
    )

    title: str = Field(..., description="Short title for the task (1..200 characters)")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: StrictBool = Field(default=False, description="Completion status flag")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        if v is not None and not isinstance(v, str):
            raise ValueError("Title must be a string")
        return _check_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _check_description(v)


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "completed": True,
            }
        },
    )

    title: Optional[str] = Field(default=None, description="Short title for the task (1..200 characters)")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: Optional[StrictBool] = Field(default=None, description="Completion status flag")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        if v is not None and not isinstance(v, str):
            raise ValueError("Title must be a string")
        return _check_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _check_description(v)

    @field_validator("completed")
    @classmethod
    def validate_completed(cls, v: Optional[bool]) -> bool:
        if v is None:
            raise ValueError("Completed must be a boolean")
        return v

    def changes(self) -> dict:
        """Return only the fields the client actually sent."""
        return self.model_dump(include=self.model_fields_set)


# PUBLIC_INTERFACE
class TaskMarkDone(BaseModel):
    """Schema for the dedicated completion toggle."""

    model_config = ConfigDict(json_schema_extra={"example": {"completed": True}})

    completed: StrictBool = Field(..., description="New completion status")


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task, using the document field names.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "_id": "6650f1f2a1b2c3d4e5f60718",
                "userId": "0f8e2b7c-1234-4a5b-9c8d-7e6f5a4b3c2d",
                "title": "Buy groceries",
                "description": None,
                "completed": False,
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        },
    )

    id: str = Field(..., alias="_id", description="Unique identifier of the task")
    user_id: str = Field(..., alias="userId", description="Owner of the task")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp")


class TaskEnvelope(BaseModel):
    task: TaskOut


class TaskListEnvelope(BaseModel):
    tasks: List[TaskOut]


class MessageOut(BaseModel):
    message: str


class ErrorOut(BaseModel):
    error: str
    details: Optional[Any] = None


# Identity provider payloads

_PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "Password must contain lowercase letter"),
    (re.compile(r"[A-Z]"), "Password must contain uppercase letter"),
    (re.compile(r"[0-9]"), "Password must contain number"),
    (re.compile(r"[^a-zA-Z0-9]"), "Password must contain special character"),
)


# PUBLIC_INTERFACE
class SignUpRequest(BaseModel):
    name: str = Field(..., min_length=2, description="Display name")
    email: EmailStr
    password: str = Field(..., description="At least 8 chars with lower, upper, digit and special char")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        for pattern, message in _PASSWORD_RULES:
            if not pattern.search(v):
                raise ValueError(message)
        return v


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ConfirmSignUpRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, description="Verification code sent by email")


class ResendCodeRequest(BaseModel):
    email: EmailStr


class SignUpOut(BaseModel):
    user_id: Optional[str] = Field(default=None, serialization_alias="userId")
    confirmed: bool


class SessionOut(BaseModel):
    id_token: str = Field(..., serialization_alias="idToken")
    access_token: str = Field(..., serialization_alias="accessToken")
    expires_in: int = Field(..., serialization_alias="expiresIn")
    user_id: Optional[str] = Field(default=None, serialization_alias="userId")
