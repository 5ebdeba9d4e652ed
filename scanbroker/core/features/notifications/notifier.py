# (c) Copyright Datacraft, 2026
"""
Notifier for document lifecycle events.

Delivery (email, push, in-app) is owned by another service; we only hand
events over. A failed hand-over must never undo the state change that
produced the event, so callers go through notify_safely().
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime

import httpx

from scanbroker.core.config import Settings, get_settings
from scanbroker.core.utils.tz import utc_now

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
	document_id: str
	occurred_at: datetime = field(default_factory=utc_now, kw_only=True)

	name = "document.event"

	def to_payload(self) -> dict:
		data = asdict(self)
		data.pop("occurred_at")
		return {
			"event": self.name,
			"timestamp": self.occurred_at.isoformat(),
			"data": data,
		}


@dataclass
class DocumentCompleted(NotificationEvent):
	owner_id: str | None = None
	# "staff", "ingestion" or "admin"
	source: str = "staff"

	name = "document.completed"


@dataclass
class DocumentNeedsReview(NotificationEvent):
	reason: str = ""

	name = "document.needs_review"


@dataclass
class DocumentAssigned(NotificationEvent):
	staff_id: str = ""

	name = "document.assigned"


@dataclass
class DocumentCancelled(NotificationEvent):
	owner_id: str | None = None
	reason: str | None = None

	name = "document.cancelled"


class Notifier(ABC):
	@abstractmethod
	async def notify(self, event: NotificationEvent) -> None:
		...


class LoggingNotifier(Notifier):
	"""Writes events to the log only."""

	async def notify(self, event: NotificationEvent) -> None:
		logger.info(f"Event {event.name}: {event.to_payload()['data']}")


class WebhookNotifier(Notifier):
	"""POSTs each event as JSON to a webhook URL."""

	def __init__(
		self,
		url: str,
		timeout: float = 10.0,
		headers: dict[str, str] | None = None,
	):
		self.url = url
		self.timeout = timeout
		self.headers = dict(headers or {})
		self.headers.setdefault("Content-Type", "application/json")

	async def notify(self, event: NotificationEvent) -> None:
		async with httpx.AsyncClient(timeout=self.timeout) as client:
			response = await client.post(
				self.url,
				json=event.to_payload(),
				headers=self.headers,
			)
		response.raise_for_status()
		logger.info(f"Webhook {event.name} sent to {self.url}: {response.status_code}")


async def notify_safely(notifier: Notifier | None, event: NotificationEvent) -> bool:
	"""Deliver an event, logging instead of raising on failure.

	Returns True when the notifier accepted the event.
	"""
	if notifier is None:
		return False
	try:
		await notifier.notify(event)
	except Exception:
		logger.exception(f"Failed to deliver {event.name} for document {event.document_id}")
		return False
	return True


def get_notifier(settings: Settings | None = None) -> Notifier:
	settings = settings or get_settings()
	if settings.notifier_webhook_url:
		return WebhookNotifier(
			url=settings.notifier_webhook_url,
			timeout=settings.notifier_timeout,
		)
	return LoggingNotifier()
