"""Validation of task submissions.

All validation failures raise TaskValidationError with a message suitable
for returning to the submitter.
"""

import json
import re
from typing import Any, Dict

from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from modules.tasks.errors import TaskValidationError

DEFAULT_MAX_TASK_ID_LENGTH = 255
DEFAULT_MAX_PAYLOAD_SIZE = 256 * 1024

TASK_ID_REGEX = re.compile(r"^[a-zA-Z0-9_-]+$")


def payload_size(payload: Any) -> int:
    """Size in bytes of the compact JSON serialization of ``payload``."""
    return len(
        json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str).encode(
            "utf-8"
        )
    )


def _limit(info: ValidationInfo, name: str, default: int) -> int:
    return (info.context or {}).get(name, default)


class SubmitTaskRequest(BaseModel):
    """A task submission.

    Limits can be overridden through the validation context
    (``max_task_id_length``, ``max_payload_size``).
    """

    task_id: str
    payload: Dict[str, Any]

    @field_validator("task_id")
    @classmethod
    def check_task_id(cls, v: str, info: ValidationInfo) -> str:
        if not v:
            raise ValueError("Task ID cannot be empty")
        max_length = _limit(info, "max_task_id_length", DEFAULT_MAX_TASK_ID_LENGTH)
        if len(v) > max_length:
            raise ValueError(f"Task ID cannot exceed {max_length} characters")
        if not TASK_ID_REGEX.match(v):
            raise ValueError(
                "Task ID can only contain alphanumeric characters, hyphens, and underscores"
            )
        return v

    @field_validator("payload")
    @classmethod
    def check_payload_size(cls, v: Dict[str, Any], info: ValidationInfo) -> Dict[str, Any]:
        max_size = _limit(info, "max_payload_size", DEFAULT_MAX_PAYLOAD_SIZE)
        size = payload_size(v)
        if size > max_size:
            raise ValueError(
                f"Payload size ({size} bytes) exceeds maximum allowed size ({max_size} bytes)"
            )
        return v


def validate_submission(
    task_id: Any,
    payload: Any,
    max_task_id_length: int = DEFAULT_MAX_TASK_ID_LENGTH,
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
) -> SubmitTaskRequest:
    """Validate a submission and return the parsed request.

    Raises:
        TaskValidationError: If the task id or payload is invalid.
    """
    try:
        return SubmitTaskRequest.model_validate(
            {"task_id": task_id, "payload": payload},
            strict=True,
            context={
                "max_task_id_length": max_task_id_length,
                "max_payload_size": max_payload_size,
            },
        )
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "Invalid submission")
        raise TaskValidationError(
            f"{field}: {message}" if field else message,
            task_id=task_id if isinstance(task_id, str) else None,
        ) from e
