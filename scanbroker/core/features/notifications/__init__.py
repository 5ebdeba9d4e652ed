# (c) Copyright Datacraft, 2026
"""Document lifecycle events."""

from .notifier import (
	DocumentAssigned,
	DocumentCancelled,
	DocumentCompleted,
	DocumentNeedsReview,
	LoggingNotifier,
	NotificationEvent,
	Notifier,
	WebhookNotifier,
	get_notifier,
	notify_safely,
)

__all__ = [
	"DocumentAssigned",
	"DocumentCancelled",
	"DocumentCompleted",
	"DocumentNeedsReview",
	"LoggingNotifier",
	"NotificationEvent",
	"Notifier",
	"WebhookNotifier",
	"get_notifier",
	"notify_safely",
]
