"""
Result-returning validators for task payloads.

Each ``validate_*`` function takes the raw decoded JSON body and returns a
ValidationResult instead of raising, so handlers branch on ``result.ok``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .schemas import TaskCreate, TaskMarkDone, TaskUpdate

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ValidationResult(Generic[ModelT]):
    ok: bool
    value: Optional[ModelT] = None
    errors: List[FieldError] = field(default_factory=list)


def _message(err: dict) -> str:
    # pydantic prefixes ValueError messages with "Value error, "
    if err.get("type") == "value_error":
        ctx_error = (err.get("ctx") or {}).get("error")
        if ctx_error is not None:
            return str(ctx_error)
    return err.get("msg", "Invalid value")


def field_errors(exc: ValidationError) -> List[FieldError]:
    """Flatten a pydantic ValidationError into FieldErrors."""
    out: List[FieldError] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        out.append(FieldError(field=loc or "body", message=_message(err)))
    return out


def _validate(model: Type[ModelT], payload: Any) -> ValidationResult[ModelT]:
    if not isinstance(payload, dict):
        return ValidationResult(ok=False, errors=[FieldError("body", "Request body must be a JSON object")])
    try:
        return ValidationResult(ok=True, value=model.model_validate(payload))
    except ValidationError as exc:
        return ValidationResult(ok=False, errors=field_errors(exc))


# PUBLIC_INTERFACE
def validate_create(payload: Any) -> ValidationResult[TaskCreate]:
    """Validate a create payload: title required (1..200), completed defaults to False."""
    return _validate(TaskCreate, payload)


# PUBLIC_INTERFACE
def validate_update(payload: Any) -> ValidationResult[TaskUpdate]:
    """Validate an update payload; ``{}`` is a valid no-op update."""
    return _validate(TaskUpdate, payload)


# PUBLIC_INTERFACE
def validate_mark_done(payload: Any) -> ValidationResult[TaskMarkDone]:
    """Validate a mark-done payload; ``completed`` must be a JSON boolean."""
    return _validate(TaskMarkDone, payload)
