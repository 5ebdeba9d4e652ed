# (c) Copyright Datacraft, 2026
"""
Bulk report ingestion.

A batch of report files (PDFs and ZIPs of PDFs) is flattened, stored,
classified by the external analyzer and reconciled against the open
documents. Files are processed one at a time; every file ends up either
mapped onto a document, filed as an unmatched report, or listed as an
error. One bad file never aborts the batch.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from uuid_extensions import uuid7str

from scanbroker.core.features.auth import Actor
from scanbroker.core.features.documents.db import api as docs_api
from scanbroker.core.features.documents.db.orm import Document, UnmatchedReport
from scanbroker.core.features.notifications import (
	DocumentCompleted,
	DocumentNeedsReview,
	NotificationEvent,
	Notifier,
	notify_safely,
)
from scanbroker.core.features.queue.exceptions import (
	DocumentNotFoundError,
	InvalidTransitionError,
	MissingReportError,
	NotAuthorizedError,
	QueueError,
)
from scanbroker.core.features.reconciliation import (
	MatchThresholds,
	normalize,
	preview_matches,
)
from scanbroker.core.storage import REPORT_CONTENT_TYPE, StorageBackend, StorageError
from scanbroker.core.types import OPEN_STATUSES, ReportType
from scanbroker.core.utils.tz import utc_now

from .analyzer import AnalyzerError, Classification, ReportAnalyzer
from .archive import (
	ArchiveError,
	ExpandedFile,
	expand_archive,
	is_archive,
	is_pdf,
	report_basename,
)

logger = logging.getLogger(__name__)


class UnmatchedReportNotFoundError(QueueError):
	status_code = 404

	def __init__(self, unmatched_id: str):
		self.unmatched_id = unmatched_id
		super().__init__(f"Unmatched report {unmatched_id} not found")


@dataclass
class IncomingFile:
	"""A file as received from the caller, before archive expansion."""
	name: str
	data: bytes
	content_type: str | None = None


@dataclass
class IncomingReport:
	"""One stored report file travelling through the pipeline."""
	file_name: str
	normalized_key: str
	storage_path: str
	detected_type: ReportType | None = None
	detected_percentage: float | None = None
	source_archive: str | None = None
	# Why classification failed, if it did
	classification_error: str | None = None


@dataclass
class MappedReport:
	file_name: str
	document_id: str
	report_type: ReportType
	percentage: float | None
	storage_path: str
	manual: bool = False


@dataclass
class UnmatchedEntry:
	unmatched_id: str
	file_name: str
	reason: str
	report_type: ReportType | None = None
	matched_document_id: str | None = None
	suggestions: list[dict] = field(default_factory=list)


@dataclass
class ReviewEntry:
	document_id: str
	file_name: str
	reason: str


@dataclass
class IngestionError:
	file_name: str
	error: str
	source_archive: str | None = None


@dataclass
class IngestionStats:
	total_reports: int = 0
	mapped: int = 0
	unmatched: int = 0
	completed: int = 0
	needs_review: int = 0
	errors: int = 0


@dataclass
class IngestionResult:
	"""Per-file outcome of an ingestion batch."""
	batch_id: str
	stats: IngestionStats = field(default_factory=IngestionStats)
	mapped: list[MappedReport] = field(default_factory=list)
	unmatched: list[UnmatchedEntry] = field(default_factory=list)
	needs_review: list[ReviewEntry] = field(default_factory=list)
	completed_documents: list[str] = field(default_factory=list)
	errors: list[IngestionError] = field(default_factory=list)

	def add_error(self, file_name: str, error: str, source_archive: str | None = None):
		self.errors.append(IngestionError(file_name, error, source_archive))
		self.stats.errors += 1

	def checkpoint(self) -> tuple:
		"""Sizes and counts to roll back to if a file fails half way."""
		return (
			replace(self.stats),
			len(self.mapped),
			len(self.unmatched),
			len(self.needs_review),
			len(self.completed_documents),
			len(self.errors),
		)

	def restore(self, checkpoint: tuple) -> None:
		stats, mapped, unmatched, needs_review, completed, errors = checkpoint
		self.stats = replace(stats)
		del self.mapped[mapped:]
		del self.unmatched[unmatched:]
		del self.needs_review[needs_review:]
		del self.completed_documents[completed:]
		del self.errors[errors:]


def batch_storage_path(batch_id: str, file_name: str) -> str:
	"""Storage key for a bulk uploaded report."""
	timestamp = int(utc_now().timestamp() * 1000)
	return f"reports/bulk/{batch_id}/{timestamp}_{file_name}"


class ReportIngestionService:
	"""Maps externally produced report files onto documents."""

	def __init__(
		self,
		session: AsyncSession,
		storage: StorageBackend,
		analyzer: ReportAnalyzer,
		notifier: Notifier | None = None,
		thresholds: MatchThresholds | None = None,
		max_file_size: int | None = None,
	):
		self.session = session
		self.storage = storage
		self.analyzer = analyzer
		self.notifier = notifier
		self.thresholds = thresholds or MatchThresholds()
		self.max_file_size = max_file_size
		# Events of the file being processed, sent once its changes are committed
		self._outbox: list[NotificationEvent] = []

	# =====================================================
	# Batch pipeline
	# =====================================================

	async def ingest(
		self,
		files: Sequence[IncomingFile],
		uploaded_by: str,
		manual_assignments: dict[str, str] | None = None,
	) -> IngestionResult:
		"""Run a batch of report files through the pipeline.

		Args:
			files: Uploaded PDFs and ZIP archives
			uploaded_by: Actor id recorded on unmatched reports
			manual_assignments: Confirmed report filename -> document id map
				from a preview step; takes precedence over automatic matching

		Returns:
			Aggregate counts and per-file detail
		"""
		manual_assignments = {
			report_basename(name): document_id
			for name, document_id in (manual_assignments or {}).items()
		}
		result = IngestionResult(batch_id=uuid7str())

		reports = self._flatten(files, result)
		result.stats.total_reports = len(reports)
		logger.info(
			f"Batch {result.batch_id}: {len(reports)} report files from "
			f"{len(files)} uploads by {uploaded_by}"
		)

		for report_file in reports:
			if report_file.error:
				result.add_error(report_file.name, report_file.error, report_file.source_archive)
				continue

			snapshot = result.checkpoint()
			self._outbox = []
			try:
				await self._process(result, report_file, uploaded_by, manual_assignments)
			except Exception as e:
				logger.exception(f"Batch {result.batch_id}: {report_file.name} failed")
				await self.session.rollback()
				result.restore(snapshot)
				result.add_error(
					report_file.name,
					f"Processing failed: {e}",
					report_file.source_archive,
				)
				continue

			for event in self._outbox:
				await notify_safely(self.notifier, event)
			self._outbox = []

		logger.info(
			f"Batch {result.batch_id} done: mapped={result.stats.mapped} "
			f"unmatched={result.stats.unmatched} completed={result.stats.completed} "
			f"needs_review={result.stats.needs_review} errors={result.stats.errors}"
		)
		return result

	async def _process(
		self,
		result: IngestionResult,
		report_file: ExpandedFile,
		uploaded_by: str,
		manual_assignments: dict[str, str],
	) -> None:
		incoming = await self._persist(result, report_file)
		if incoming is None:
			return

		try:
			await self._classify(incoming, report_file.data)

			document_id = manual_assignments.get(incoming.file_name)
			if document_id:
				await self._apply_manual(result, incoming, document_id, uploaded_by)
			else:
				await self._reconcile(result, incoming, uploaded_by)

			await self.session.commit()
		except Exception:
			# Nothing will reference the stored copy once the caller rolls back
			try:
				await self.storage.delete(incoming.storage_path)
			except StorageError as e:
				logger.warning(f"Could not remove {incoming.storage_path}: {e}")
			raise

	def _flatten(
		self,
		files: Sequence[IncomingFile],
		result: IngestionResult,
	) -> list[ExpandedFile]:
		reports: list[ExpandedFile] = []

		for upload in files:
			if is_archive(upload.name, upload.content_type):
				try:
					entries = expand_archive(
						upload.name,
						upload.data,
						max_entry_size=self.max_file_size,
					)
				except ArchiveError as e:
					logger.warning(f"Skipping archive {upload.name}: {e.reason}")
					result.add_error(upload.name, f"Corrupt archive: {e.reason}")
					continue
				reports.extend(entries)

			elif is_pdf(upload.name, upload.content_type):
				error = None
				if self.max_file_size is not None and len(upload.data) > self.max_file_size:
					error = f"File exceeds {self.max_file_size} bytes"
				reports.append(ExpandedFile(
					name=report_basename(upload.name),
					data=upload.data if error is None else b"",
					error=error,
				))

			else:
				result.add_error(upload.name, "Unsupported file type")

		return reports

	async def _persist(
		self,
		result: IngestionResult,
		report_file: ExpandedFile,
	) -> IncomingReport | None:
		path = batch_storage_path(result.batch_id, report_file.name)
		try:
			await self.storage.put(
				path,
				report_file.data,
				content_type=REPORT_CONTENT_TYPE,
				metadata={"batch_id": result.batch_id},
			)
		except StorageError as e:
			logger.error(f"Upload failed for {report_file.name}: {e}")
			result.add_error(report_file.name, f"Upload failed: {e}", report_file.source_archive)
			return None

		return IncomingReport(
			file_name=report_file.name,
			normalized_key=normalize(report_file.name),
			storage_path=path,
			source_archive=report_file.source_archive,
		)

	async def _classify(self, incoming: IncomingReport, data: bytes) -> None:
		try:
			classification = await self.analyzer.analyze(incoming.file_name, data)
		except AnalyzerError as e:
			logger.warning(f"Analyzer failed for {incoming.file_name}: {e}")
			classification = Classification(report_type=None)
			incoming.classification_error = str(e)
		else:
			if not classification.resolved:
				logger.warning(f"Analyzer could not determine the type of {incoming.file_name}")

		incoming.detected_type = classification.report_type
		incoming.detected_percentage = classification.percentage

	async def _apply_manual(
		self,
		result: IngestionResult,
		incoming: IncomingReport,
		document_id: str,
		uploaded_by: str,
	) -> None:
		document = await docs_api.get_document(self.session, document_id)
		if document is None or document.status not in OPEN_STATUSES:
			await self._file_unmatched(
				result,
				incoming,
				uploaded_by,
				reason=f"Assigned document {document_id} is not open for reports",
			)
			return

		if incoming.detected_type is None:
			await self._flag_review(result, document, incoming, self._unclassified_reason(incoming))
			await self._file_unmatched(
				result,
				incoming,
				uploaded_by,
				reason=self._unclassified_reason(incoming),
				matched_document_id=document.id,
			)
			return

		await self._apply(result, incoming, document, uploaded_by, manual=True)

	async def _reconcile(
		self,
		result: IngestionResult,
		incoming: IncomingReport,
		uploaded_by: str,
	) -> None:
		# Live state: earlier files of this batch and concurrent batches
		# may already have filled slots
		exact = await docs_api.find_open_by_key(self.session, incoming.normalized_key)

		if incoming.detected_type is None:
			reason = self._unclassified_reason(incoming)
			if exact:
				await self._flag_review(result, exact[0], incoming, reason)
			await self._file_unmatched(
				result,
				incoming,
				uploaded_by,
				reason=reason,
				matched_document_id=exact[0].id if exact else None,
			)
			return

		report_type = incoming.detected_type
		free = [doc for doc in exact if doc.report_path(report_type) is None]

		if len(free) == 1:
			await self._apply(result, incoming, free[0], uploaded_by, manual=False)
			return

		if len(free) > 1:
			reason = (
				f"{len(free)} documents match {incoming.file_name!r}; "
				"choose one manually"
			)
			for doc in free:
				await self._flag_review(result, doc, incoming, reason)
			await self._file_unmatched(
				result,
				incoming,
				uploaded_by,
				reason=reason,
				suggestions=[{"id": doc.id, "confidence": 100} for doc in free],
			)
			return

		if exact:
			# Matching document(s) already carry this report type
			await self._collision(result, incoming, exact[0], uploaded_by)
			return

		suggestions = await self._suggest(incoming)
		await self._file_unmatched(
			result,
			incoming,
			uploaded_by,
			reason="No document with matching filename in queue",
			suggestions=suggestions,
		)

	async def _apply(
		self,
		result: IngestionResult,
		incoming: IncomingReport,
		document: Document,
		uploaded_by: str,
		manual: bool,
	) -> None:
		report_type = incoming.detected_type
		applied = await docs_api.fill_report_slot(
			self.session,
			document.id,
			report_type,
			incoming.storage_path,
			incoming.detected_percentage,
		)
		if not applied:
			await self._collision(result, incoming, document, uploaded_by)
			return

		result.mapped.append(MappedReport(
			file_name=incoming.file_name,
			document_id=document.id,
			report_type=report_type,
			percentage=incoming.detected_percentage,
			storage_path=incoming.storage_path,
			manual=manual,
		))
		result.stats.mapped += 1
		await docs_api.log_activity(
			self.session,
			uploaded_by,
			document.id,
			f"{report_type.value} report attached from bulk upload",
		)
		logger.info(
			f"Mapped {incoming.file_name} -> {document.id} ({report_type.value}, "
			f"{'manual' if manual else 'exact'})"
		)

		if await docs_api.complete_if_ready(self.session, document.id, utc_now()):
			result.completed_documents.append(document.id)
			result.stats.completed += 1
			logger.info(f"Document {document.id} completed by bulk upload")
			self._outbox.append(
				DocumentCompleted(document.id, owner_id=document.owner_id, source="ingestion")
			)

	async def _collision(
		self,
		result: IngestionResult,
		incoming: IncomingReport,
		document: Document,
		uploaded_by: str,
	) -> None:
		"""The target slot was already written; the first writer keeps it."""
		current = await docs_api.get_document(self.session, document.id)
		if current is None or current.status not in OPEN_STATUSES:
			reason = "Document is no longer open"
		else:
			reason = f"Document already has a {incoming.detected_type.value} report"
		logger.warning(f"Collision for {incoming.file_name} on {document.id}: {reason}")
		await self._flag_review(result, document, incoming, reason)
		await self._file_unmatched(
			result,
			incoming,
			uploaded_by,
			reason=reason,
			matched_document_id=document.id,
		)

	async def _flag_review(
		self,
		result: IngestionResult,
		document: Document,
		incoming: IncomingReport,
		reason: str,
	) -> None:
		await docs_api.mark_needs_review(self.session, document.id, reason)
		result.needs_review.append(ReviewEntry(document.id, incoming.file_name, reason))
		result.stats.needs_review += 1
		self._outbox.append(DocumentNeedsReview(document.id, reason=reason))

	async def _file_unmatched(
		self,
		result: IngestionResult,
		incoming: IncomingReport,
		uploaded_by: str,
		reason: str,
		matched_document_id: str | None = None,
		suggestions: list[dict] | None = None,
	) -> None:
		record = await docs_api.create_unmatched_report(
			self.session,
			file_name=incoming.file_name,
			file_path=incoming.storage_path,
			reason=reason,
			batch_id=result.batch_id,
			report_type=incoming.detected_type,
			percentage=incoming.detected_percentage,
			matched_document_id=matched_document_id,
			suggested_documents=suggestions or None,
			uploaded_by=uploaded_by,
		)
		result.unmatched.append(UnmatchedEntry(
			unmatched_id=record.id,
			file_name=incoming.file_name,
			reason=reason,
			report_type=incoming.detected_type,
			matched_document_id=matched_document_id,
			suggestions=suggestions or [],
		))
		result.stats.unmatched += 1
		logger.info(f"Unmatched {incoming.file_name}: {reason}")

	async def _suggest(self, incoming: IncomingReport) -> list[dict]:
		documents = await docs_api.list_open_documents(self.session, incoming.detected_type)
		preview = preview_matches(
			[incoming.file_name],
			documents,
			report_type=incoming.detected_type,
			thresholds=self.thresholds,
		)[0]
		return [candidate.to_dict() for candidate in preview.suggestions]

	@staticmethod
	def _unclassified_reason(incoming: IncomingReport) -> str:
		if incoming.classification_error:
			return f"Analyzer could not classify report: {incoming.classification_error}"
		return "Analyzer could not determine report type"

	# =====================================================
	# Unmatched report operations
	# =====================================================

	async def list_unmatched(
		self,
		resolved: bool | None = False,
		limit: int = 100,
		offset: int = 0,
	) -> list[UnmatchedReport]:
		return await docs_api.list_unmatched_reports(
			self.session, resolved=resolved, limit=limit, offset=offset
		)

	async def assign_unmatched(
		self,
		unmatched_id: str,
		document_id: str,
		actor: Actor,
		report_type: ReportType | None = None,
	) -> Document:
		"""Attach a previously unmatched report to a document.

		Raises:
			NotAuthorizedError: Actor is not an admin
			UnmatchedReportNotFoundError: No such unmatched report
			DocumentNotFoundError: No such document
			MissingReportError: Report type unknown and not given
			InvalidTransitionError: Already resolved, document closed or slot taken
		"""
		if not actor.is_admin:
			raise NotAuthorizedError("Only admins can assign unmatched reports")

		record = await docs_api.get_unmatched_report(self.session, unmatched_id)
		if record is None:
			raise UnmatchedReportNotFoundError(unmatched_id)
		if record.resolved:
			raise InvalidTransitionError("Unmatched report is already resolved")

		document = await docs_api.get_document(self.session, document_id)
		if document is None:
			raise DocumentNotFoundError(document_id)

		report_type = report_type or record.report_type
		if report_type is None:
			raise MissingReportError("Report type is unknown; specify it explicitly")
		report_type = ReportType(report_type)

		if document.status not in OPEN_STATUSES:
			raise InvalidTransitionError(
				f"Document {document_id} is {document.status.value}"
			)

		percentage = record.percentage if record.report_type == report_type else None
		applied = await docs_api.fill_report_slot(
			self.session, document.id, report_type, record.file_path, percentage
		)
		if not applied:
			raise InvalidTransitionError(
				f"Document {document_id} already has a {report_type.value} report"
			)

		now = utc_now()
		await docs_api.resolve_unmatched_report(
			self.session, record.id, document.id, report_type, actor.id, now
		)
		await docs_api.log_activity(
			self.session,
			actor.id,
			document.id,
			f"Unmatched {report_type.value} report {record.file_name} assigned",
		)
		# The report this flag was raised for is now settled
		await docs_api.clear_needs_review(self.session, document.id)
		completed = await docs_api.complete_if_ready(self.session, document.id, now)
		await self.session.commit()

		logger.info(f"{actor.id} assigned unmatched {record.id} to {document.id}")
		if completed:
			await notify_safely(
				self.notifier,
				DocumentCompleted(document.id, owner_id=document.owner_id, source="admin"),
			)

		return await docs_api.get_document(self.session, document.id)

	async def delete_unmatched(self, unmatched_id: str, actor: Actor) -> None:
		"""Remove an unmatched report and its stored file."""
		if not actor.is_admin:
			raise NotAuthorizedError("Only admins can delete unmatched reports")

		record = await docs_api.get_unmatched_report(self.session, unmatched_id)
		if record is None:
			raise UnmatchedReportNotFoundError(unmatched_id)

		try:
			await self.storage.delete(record.file_path)
		except StorageError as e:
			logger.error(f"Failed to delete stored file {record.file_path}: {e}")

		await docs_api.delete_unmatched_report(self.session, record.id)
		await self.session.commit()
		logger.info(f"{actor.id} deleted unmatched report {record.id}")
