"""Admin API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProjectCreate(BaseModel):
    """POST /admin/projects request."""

    name: str = Field(min_length=1)
    routing_key: str = Field(min_length=1, max_length=50)
    delivery_credential: str | None = None
    system_prompt: str | None = None


class ProjectUpdate(BaseModel):
    """PUT /admin/projects/{id}; only the fields sent are changed."""

    name: str | None = Field(default=None, min_length=1)
    routing_key: str | None = Field(default=None, min_length=1, max_length=50)
    delivery_credential: str | None = None
    system_prompt: str | None = None


class ProjectOut(BaseModel):
    # the delivery credential itself is never echoed back
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    routing_key: str
    has_delivery_credential: bool
    system_prompt: str | None
    created_at: datetime
    updated_at: datetime


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    tenant_id: int
    from_number: str
    to_number: str
    body: str
    direction: str
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")


class ConversationOut(MessageOut):
    project_name: str


class ProjectDetails(BaseModel):
    project: ProjectOut
    conversations: list[MessageOut]


class ProjectStats(BaseModel):
    id: int
    project_name: str
    message_count: int
