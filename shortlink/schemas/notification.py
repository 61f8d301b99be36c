"""Notification Pydantic schemas."""

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    message: str
    sent: int
    failed: int
    skipped: int
