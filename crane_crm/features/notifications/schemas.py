"""Pydantic schemas for the notifications API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Channel = Literal["in_app", "email", "sms", "push"]
Priority = Literal["low", "medium", "high", "urgent"]


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    message: str
    type: str
    is_read: bool
    read_at: datetime | None = None
    priority: str
    reference_id: str | None = None
    reference_type: str | None = None
    created_at: datetime
    expires_at: datetime | None = None


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    total: int
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class PreferenceResponse(BaseModel):
    user_id: str
    in_app: bool = True
    email: bool = True
    sms: bool = True
    push: bool = True
    muted_types: list[str] = Field(default_factory=list)


class PreferenceUpdate(BaseModel):
    """Partial preference update. Omitted fields are left unchanged."""

    in_app: bool | None = None
    email: bool | None = None
    sms: bool | None = None
    push: bool | None = None
    muted_types: list[str] | None = Field(default=None, description="Event types never delivered")

    @field_validator("muted_types")
    @classmethod
    def dedupe_types(cls, v: list[str] | None) -> list[str] | None:
        return list(dict.fromkeys(v)) if v is not None else v


class RecipientIn(BaseModel):
    id: str = Field(..., min_length=1)
    email: str | None = None
    phone: str | None = None
    name: str | None = None


class SendNotificationRequest(BaseModel):
    """Body of ``POST /notifications/send``.

    Example:
        {"type": "lead_created", "recipients": [{"id": "u1", "email": "a@b.com"}],
         "channels": ["in_app", "email"], "data": {"customerName": "Acme"}}
    """

    type: str = Field(..., min_length=1, max_length=100)
    recipients: list[RecipientIn] | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    channels: list[str] | None = Field(
        default=None,
        description="Explicit channels; the rule's channels are used when omitted or empty",
    )
    priority: Priority | None = None
    schedule_at: datetime | None = Field(default=None, alias="scheduleAt")

    model_config = ConfigDict(populate_by_name=True)


class ChannelAnalytics(BaseModel):
    sent: int = 0
    failed: int = 0


class AnalyticsResponse(BaseModel):
    days: int
    since: datetime
    by_channel: dict[str, ChannelAnalytics]
    by_type: dict[str, int]
    total_sent: int
    total_failed: int
    success_rate: float | None = None
    unread_count: int
