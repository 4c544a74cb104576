"""Run-log notifications."""

from .notifier import (
    EmailChannel,
    EventType,
    MailCommandChannel,
    NotificationChannel,
    NotificationEvent,
    Notifier,
    build_notifier,
)

__all__ = [
    "EmailChannel",
    "EventType",
    "MailCommandChannel",
    "NotificationChannel",
    "NotificationEvent",
    "Notifier",
    "build_notifier",
]
