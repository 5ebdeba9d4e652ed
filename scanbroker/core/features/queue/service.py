# (c) Copyright Datacraft, 2026
"""
Document processing queue.

pending -> in_progress -> completed, plus release (in_progress -> pending)
and cancel (pending|in_progress -> cancelled). Each transition is a single
conditional UPDATE; when it affects no row the caller lost a race or the
document was never in the expected state, and nothing is changed.

Assignment timeouts are advisory. Overdue documents stay with their
assignee until an admin (or an automation account) releases them.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from scanbroker.core.config import Settings, get_settings
from scanbroker.core.features.auth import Actor
from scanbroker.core.features.documents.db import api as docs_api
from scanbroker.core.features.documents.db.orm import Document
from scanbroker.core.features.notifications import (
	DocumentAssigned,
	DocumentCancelled,
	DocumentCompleted,
	Notifier,
	notify_safely,
)
from scanbroker.core.storage import REPORT_CONTENT_TYPE, StorageBackend, StorageError
from scanbroker.core.types import (
	OPEN_STATUSES,
	DocumentStatus,
	ReportType,
	ScanType,
	required_report_types,
)
from scanbroker.core.utils.tz import as_utc, utc_now

from . import policy
from .exceptions import (
	ConcurrencyLimitError,
	DocumentNotFoundError,
	InvalidTransitionError,
	MissingReportError,
	NotAuthorizedError,
	ScanTypeNotAllowedError,
)

logger = logging.getLogger(__name__)


@dataclass
class QueueSettings:
	"""A staff member's effective queue limits."""
	staff_id: str
	max_concurrent_files: int
	time_limit_minutes: int
	assigned_scan_types: list[str] | None = None
	# True when no row exists and global defaults apply
	is_default: bool = False


@dataclass
class OverdueDocument:
	document: Document
	time_limit_minutes: int
	elapsed_minutes: int


def report_storage_path(document: Document, report_type: ReportType) -> str:
	owner = document.owner_id or "unowned"
	return f"reports/{owner}/{document.id}_{ReportType(report_type).value}.pdf"


class QueueService:
	"""Pick, submit, release and cancel documents."""

	def __init__(
		self,
		session: AsyncSession,
		storage: StorageBackend | None = None,
		notifier: Notifier | None = None,
		settings: Settings | None = None,
	):
		self.session = session
		self.storage = storage
		self.notifier = notifier
		self.settings = settings or get_settings()

	async def _get(self, document_id: str) -> Document:
		document = await docs_api.get_document(self.session, document_id)
		if document is None:
			raise DocumentNotFoundError(document_id)
		return document

	# =====================================================
	# Staff settings
	# =====================================================

	def _effective(self, staff_id: str, row) -> QueueSettings:
		if row is None:
			return QueueSettings(
				staff_id=staff_id,
				max_concurrent_files=self.settings.default_max_concurrent_files,
				time_limit_minutes=self.settings.default_time_limit_minutes,
				is_default=True,
			)
		return QueueSettings(
			staff_id=staff_id,
			max_concurrent_files=row.max_concurrent_files,
			time_limit_minutes=row.time_limit_minutes,
			assigned_scan_types=row.assigned_scan_types,
		)

	async def get_staff_settings(self, staff_id: str) -> QueueSettings:
		row = await docs_api.get_staff_settings(self.session, staff_id)
		return self._effective(staff_id, row)

	async def update_staff_settings(
		self,
		staff_id: str,
		actor: Actor,
		max_concurrent_files: int,
		time_limit_minutes: int,
		assigned_scan_types: list[ScanType] | None = None,
	) -> QueueSettings:
		if not actor.is_admin:
			raise NotAuthorizedError("Only admins can change staff queue settings")

		scan_types = None
		if assigned_scan_types is not None:
			scan_types = [ScanType(t).value for t in assigned_scan_types]

		row = await docs_api.upsert_staff_settings(
			self.session,
			staff_id,
			max_concurrent_files=max_concurrent_files,
			time_limit_minutes=time_limit_minutes,
			assigned_scan_types=scan_types,
		)
		await self.session.commit()
		logger.info(
			f"{actor.id} set queue limits for {staff_id}: "
			f"max={max_concurrent_files}, time_limit={time_limit_minutes}m"
		)
		return self._effective(staff_id, row)

	# =====================================================
	# Transitions
	# =====================================================

	async def pick(self, document_id: str, actor: Actor) -> Document:
		"""Claim a pending document for the actor.

		Raises:
			NotAuthorizedError: Actor is not staff or admin
			DocumentNotFoundError: No such document
			InvalidTransitionError: Document is not pending (or was just taken)
			ScanTypeNotAllowedError: Staff may not work this scan type
			ConcurrencyLimitError: Staff already holds max_concurrent_files
		"""
		if not policy.can_work_queue(actor):
			raise NotAuthorizedError("Only staff can pick documents")

		document = await self._get(document_id)
		if document.status != DocumentStatus.PENDING:
			raise InvalidTransitionError(
				f"Document {document_id} is {document.status.value}, not pending"
			)

		limit = None
		if not policy.can_bypass_concurrency_limit(actor):
			staff = await self.get_staff_settings(actor.id)
			if not policy.scan_type_allowed(staff.assigned_scan_types, document.scan_type):
				raise ScanTypeNotAllowedError(
					f"Staff {actor.id} is not assigned {document.scan_type.value} scans"
				)

			limit = staff.max_concurrent_files
			await docs_api.lock_staff_queue(self.session, actor.id)
			current = await docs_api.count_in_progress(self.session, actor.id)
			if current >= limit:
				raise ConcurrencyLimitError(limit=limit, current=current)

		claimed = await docs_api.claim_document(
			self.session,
			document_id,
			actor.id,
			utc_now(),
			max_in_progress=limit,
		)
		if not claimed:
			await self.session.rollback()
			if limit is not None:
				current = await docs_api.count_in_progress(self.session, actor.id)
				if current >= limit:
					raise ConcurrencyLimitError(limit=limit, current=current)
			raise InvalidTransitionError(f"Document {document_id} was picked by someone else")

		await docs_api.log_activity(self.session, actor.id, document_id, "picked")
		await self.session.commit()
		logger.info(f"{actor.id} picked document {document_id}")

		await notify_safely(self.notifier, DocumentAssigned(document_id, staff_id=actor.id))
		return await self._get(document_id)

	async def submit(
		self,
		document_id: str,
		actor: Actor,
		similarity_report: bytes | None = None,
		ai_report: bytes | None = None,
		similarity_percentage: float | None = None,
		ai_percentage: float | None = None,
		remarks: str | None = None,
	) -> Document:
		"""Attach the finished reports and complete the document.

		Raises:
			DocumentNotFoundError: No such document
			NotAuthorizedError: Actor neither holds the document nor is admin
			InvalidTransitionError: Document already completed or cancelled
			MissingReportError: A required report is neither uploaded nor present
			StorageError: Report upload failed
		"""
		document = await self._get(document_id)
		if document.status not in OPEN_STATUSES:
			raise InvalidTransitionError(
				f"Document {document_id} is {document.status.value}"
			)
		if not policy.can_submit_for(actor, document):
			raise NotAuthorizedError(
				f"Document {document_id} is not assigned to {actor.id}"
			)

		files = {
			ReportType.SIMILARITY: similarity_report,
			ReportType.AI: ai_report,
		}
		percentages = {
			ReportType.SIMILARITY: similarity_percentage,
			ReportType.AI: ai_percentage,
		}

		if policy.requires_all_reports(actor):
			for report_type in required_report_types(document.scan_type):
				if not files[report_type]:
					raise MissingReportError(
						f"{report_type.value} report file is required for "
						f"{document.scan_type.value} scans"
					)

		if self.storage is None and any(files.values()):
			raise StorageError("No storage backend configured for report uploads")

		reports: dict[ReportType, tuple[str, float | None]] = {}
		for report_type, data in files.items():
			if not data:
				continue
			path = report_storage_path(document, report_type)
			await self.storage.put(path, data, content_type=REPORT_CONTENT_TYPE)
			reports[report_type] = (path, percentages[report_type])

		submitted = await docs_api.submit_document(
			self.session,
			document_id,
			reports=reports,
			percentages=percentages,
			remarks=remarks,
			now=utc_now(),
			assigned_staff_id=None if actor.is_admin else actor.id,
		)
		if not submitted:
			await self.session.rollback()
			current = await self._get(document_id)
			await self._discard_uploads([
				path for report_type, (path, _) in reports.items()
				if current.report_path(report_type) != path
			])
			if current.status not in OPEN_STATUSES or not policy.can_submit_for(actor, current):
				raise InvalidTransitionError(
					f"Document {document_id} changed state during submission"
				)
			missing = [
				t.value for t in required_report_types(current.scan_type)
				if t not in reports and current.report_path(t) is None
			]
			raise MissingReportError(f"Missing required reports: {', '.join(missing)}")

		await docs_api.log_activity(self.session, actor.id, document_id, "submitted")
		await self.session.commit()
		logger.info(f"{actor.id} submitted document {document_id}")

		document = await self._get(document_id)
		await notify_safely(
			self.notifier,
			DocumentCompleted(
				document_id,
				owner_id=document.owner_id,
				source="admin" if actor.is_admin else "staff",
			),
		)
		return document

	async def _discard_uploads(self, paths: list[str]) -> None:
		for path in paths:
			try:
				await self.storage.delete(path)
			except StorageError as e:
				logger.warning(f"Could not remove rejected upload {path}: {e}")

	async def release(
		self,
		document_id: str,
		actor: Actor,
		reason: str | None = None,
	) -> Document:
		"""Put an in-progress document back in the pending pool."""
		if not policy.can_release(actor):
			raise NotAuthorizedError("Only admins can release documents")

		document = await self._get(document_id)
		released = await docs_api.release_document(self.session, document_id)
		if not released:
			raise InvalidTransitionError(
				f"Document {document_id} is {document.status.value}, not in progress"
			)

		action = f"released from {document.assigned_staff_id}"
		if reason:
			action = f"{action}: {reason}"
		await docs_api.log_activity(self.session, actor.id, document_id, action)
		await self.session.commit()
		logger.info(f"{actor.id} {action} (document {document_id})")

		return await self._get(document_id)

	async def cancel(
		self,
		document_id: str,
		actor: Actor,
		reason: str | None = None,
	) -> Document:
		if not policy.can_cancel(actor):
			raise NotAuthorizedError("Only admins can cancel documents")

		document = await self._get(document_id)
		cancelled = await docs_api.cancel_document(
			self.session, document_id, actor.id, reason, utc_now()
		)
		if not cancelled:
			raise InvalidTransitionError(
				f"Document {document_id} is {document.status.value} and cannot be cancelled"
			)

		await docs_api.log_activity(
			self.session, actor.id, document_id, f"cancelled: {reason or 'no reason given'}"
		)
		await self.session.commit()
		logger.info(f"{actor.id} cancelled document {document_id}")

		await notify_safely(
			self.notifier,
			DocumentCancelled(document_id, owner_id=document.owner_id, reason=reason),
		)
		return await self._get(document_id)

	# =====================================================
	# Timeouts
	# =====================================================

	async def is_overdue(self, document: Document, now: datetime | None = None) -> bool:
		if document.assigned_staff_id is None:
			return False
		staff = await self.get_staff_settings(document.assigned_staff_id)
		return policy.is_overdue(document, staff.time_limit_minutes, now)

	async def list_overdue(self, now: datetime | None = None) -> list[OverdueDocument]:
		"""In-progress documents held at least their assignee's time limit."""
		now = now or utc_now()
		documents = await docs_api.list_in_progress(self.session)
		staff_ids = {d.assigned_staff_id for d in documents if d.assigned_staff_id}
		rows = await docs_api.get_staff_settings_map(self.session, sorted(staff_ids))

		overdue = []
		for document in documents:
			staff = self._effective(
				document.assigned_staff_id,
				rows.get(document.assigned_staff_id),
			)
			if policy.is_overdue(document, staff.time_limit_minutes, now):
				elapsed = as_utc(now) - as_utc(document.assigned_at)
				overdue.append(OverdueDocument(
					document=document,
					time_limit_minutes=staff.time_limit_minutes,
					elapsed_minutes=int(elapsed.total_seconds() // 60),
				))
		return overdue

	async def release_overdue(self, actor: Actor, now: datetime | None = None) -> list[str]:
		"""Release every overdue document back to pending.

		Returns:
			IDs of the documents released
		"""
		if not policy.can_release(actor):
			raise NotAuthorizedError("Only admins can release documents")

		released = []
		for item in await self.list_overdue(now):
			document = item.document
			# Still held by the same staff, otherwise it moved on meanwhile
			ok = await docs_api.release_document(
				self.session,
				document.id,
				assigned_staff_id=document.assigned_staff_id,
			)
			if not ok:
				continue
			await docs_api.log_activity(
				self.session,
				actor.id,
				document.id,
				f"released from {document.assigned_staff_id}: overdue after "
				f"{item.elapsed_minutes} of {item.time_limit_minutes} minutes",
			)
			released.append(document.id)

		await self.session.commit()
		if released:
			logger.warning(f"{actor.id} released {len(released)} overdue documents")
		return released
