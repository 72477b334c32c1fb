"""Pydantic models shared by the API, orchestrator, store, and notifier.

Beginner terms used in this file:
- AliasChoices: lets one field accept several JSON key spellings.
- Literal: restricts a field to a fixed set of allowed string values.
- exclude_none: drops unset optional fields when serializing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

OutcomeStatus = Literal["completed", "failed"]


class TextAttachment(BaseModel):
    type: Literal["text"] = "text"
    filename: str = "document.txt"
    content: str
    description: str = ""


class ImageAttachment(BaseModel):
    type: Literal["image"] = "image"
    filename: str = "image.png"
    # base64 payload or URL, passed through untouched.
    data: str
    description: str = ""


Attachment = TextAttachment | ImageAttachment


class TaskRequest(BaseModel):
    """Inbound task submission.

    Every field has a permissive default so the secret check can run before
    the required-field check; the orchestrator enforces presence.
    """

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(default="", validation_alias=AliasChoices("task_id", "taskId"))
    brief: str = Field(default="", validation_alias=AliasChoices("brief", "description"))
    evaluation_url: str = Field(
        default="",
        validation_alias=AliasChoices(
            "evaluation_url", "evaluationUrl", "callback_url", "callbackUrl"
        ),
    )
    secret: str | None = None
    round: int = 1
    # Raw entries; unrecognized shapes are dropped by parse_attachments.
    attachments: list[Any] = Field(default_factory=list)
    repo_name: str | None = Field(
        default=None, validation_alias=AliasChoices("repo_name", "repoName")
    )


class TaskAccepted(BaseModel):
    """202 response body for a submitted task."""

    status: Literal["accepted"] = "accepted"
    task_id: str
    round: int
    message: str = "Task accepted and processing"


class TaskState(BaseModel):
    """Outcome of the most recent successful round for one task id."""

    repo_name: str
    last_document: str
    repo_url: str
    deployment_url: str
    round: int
    updated_at: datetime


class TaskStatusResponse(TaskState):
    task_id: str


class OutcomePayload(BaseModel):
    """JSON body posted to the caller's evaluation URL."""

    task_id: str
    round: int
    status: OutcomeStatus
    repo_url: str | None = None
    deployment_url: str | None = None
    error: str | None = None
    processing_time_ms: int
    timestamp: datetime

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
