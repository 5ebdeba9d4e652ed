# (c) Copyright Datacraft, 2026
"""
Document repository.

Every state change is a conditional UPDATE whose WHERE clause carries
the precondition, so a concurrent writer can never be overwritten.
Callers check the returned flag instead of reading then writing.
"""

from datetime import datetime
from typing import Sequence

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from scanbroker.core.features.reconciliation.normalizer import normalize
from scanbroker.core.types import (
	OPEN_STATUSES,
	DocumentStatus,
	ReportType,
	ScanType,
)
from scanbroker.core.utils.tz import utc_now

from .orm import ActivityLog, Document, StaffSettings, UnmatchedReport


def _slot_columns(report_type: ReportType):
	match ReportType(report_type):
		case ReportType.SIMILARITY:
			return Document.similarity_report_path, Document.similarity_percentage
		case ReportType.AI:
			return Document.ai_report_path, Document.ai_percentage


def _all_reports_present():
	"""SQL condition: every report slot required by scan_type is filled."""
	return and_(
		Document.similarity_report_path.is_not(None),
		or_(
			Document.scan_type == ScanType.SIMILARITY_ONLY,
			Document.ai_report_path.is_not(None),
		),
	)


# =====================================================
# Reads
# =====================================================


async def get_document(
	session: AsyncSession,
	document_id: str,
) -> Document | None:
	"""Get document by ID, always reloading column values."""
	stmt = (
		select(Document)
		.where(Document.id == document_id)
		.execution_options(populate_existing=True)
	)
	result = await session.execute(stmt)
	return result.scalar_one_or_none()


async def list_documents(
	session: AsyncSession,
	statuses: Sequence[DocumentStatus] | None = None,
	scan_type: ScanType | None = None,
	needs_review: bool | None = None,
	assigned_staff_id: str | None = None,
	owner_id: str | None = None,
	limit: int = 100,
	offset: int = 0,
) -> tuple[list[Document], int]:
	"""List documents with filtering, oldest upload first."""
	stmt = select(Document)

	if statuses:
		stmt = stmt.where(Document.status.in_(list(statuses)))
	if scan_type:
		stmt = stmt.where(Document.scan_type == scan_type)
	if needs_review is not None:
		stmt = stmt.where(Document.needs_review == needs_review)
	if assigned_staff_id:
		stmt = stmt.where(Document.assigned_staff_id == assigned_staff_id)
	if owner_id:
		stmt = stmt.where(Document.owner_id == owner_id)

	count_stmt = select(func.count()).select_from(stmt.subquery())
	total = (await session.execute(count_stmt)).scalar_one()

	stmt = stmt.order_by(Document.uploaded_at.asc()).offset(offset).limit(limit)
	result = await session.execute(stmt)
	return list(result.scalars().all()), total


async def list_open_documents(
	session: AsyncSession,
	missing_report: ReportType | None = None,
) -> list[Document]:
	"""Documents reports may still be reconciled against.

	Args:
		missing_report: Only documents whose slot for this type is empty
	"""
	stmt = select(Document).where(Document.status.in_(OPEN_STATUSES))
	if missing_report is not None:
		path_col, _ = _slot_columns(missing_report)
		stmt = stmt.where(path_col.is_(None))

	stmt = stmt.order_by(Document.uploaded_at.asc()).execution_options(
		populate_existing=True
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def find_open_by_key(
	session: AsyncSession,
	normalized_key: str,
) -> list[Document]:
	"""Open documents with this normalized filename, oldest first."""
	stmt = (
		select(Document)
		.where(
			and_(
				Document.normalized_key == normalized_key,
				Document.status.in_(OPEN_STATUSES),
			)
		)
		.order_by(Document.uploaded_at.asc(), Document.id.asc())
		.execution_options(populate_existing=True)
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def list_in_progress(session: AsyncSession) -> list[Document]:
	stmt = (
		select(Document)
		.where(
			and_(
				Document.status == DocumentStatus.IN_PROGRESS,
				Document.assigned_at.is_not(None),
			)
		)
		.order_by(Document.assigned_at.asc())
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def count_in_progress(session: AsyncSession, staff_id: str) -> int:
	"""Number of documents currently held by a staff member."""
	stmt = select(func.count()).select_from(Document).where(
		and_(
			Document.assigned_staff_id == staff_id,
			Document.status == DocumentStatus.IN_PROGRESS,
		)
	)
	return (await session.execute(stmt)).scalar_one()


# =====================================================
# Writes
# =====================================================


async def create_document(
	session: AsyncSession,
	original_filename: str,
	scan_type: ScanType = ScanType.FULL,
	owner_id: str | None = None,
	file_path: str | None = None,
	uploaded_at: datetime | None = None,
) -> Document:
	"""Create a pending document with its normalized matching key."""
	document = Document(
		original_filename=original_filename,
		normalized_key=normalize(original_filename),
		scan_type=scan_type,
		owner_id=owner_id,
		file_path=file_path,
		status=DocumentStatus.PENDING,
		needs_review=False,
		uploaded_at=uploaded_at or utc_now(),
	)
	session.add(document)
	await session.flush()
	return document


async def rename_document(
	session: AsyncSession,
	document_id: str,
	original_filename: str,
) -> bool:
	stmt = (
		update(Document)
		.where(Document.id == document_id)
		.values(
			original_filename=original_filename,
			normalized_key=normalize(original_filename),
		)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def claim_document(
	session: AsyncSession,
	document_id: str,
	staff_id: str,
	now: datetime,
	max_in_progress: int | None = None,
) -> bool:
	"""pending -> in_progress, only if still pending at write time.

	Args:
		max_in_progress: When given, the claim also requires the staff to
			hold fewer in-progress documents than this at write time
	"""
	conditions = [
		Document.id == document_id,
		Document.status == DocumentStatus.PENDING,
	]
	if max_in_progress is not None:
		held = aliased(Document)
		held_count = (
			select(func.count())
			.select_from(held)
			.where(
				and_(
					held.assigned_staff_id == staff_id,
					held.status == DocumentStatus.IN_PROGRESS,
				)
			)
			.scalar_subquery()
		)
		conditions.append(held_count < max_in_progress)

	stmt = (
		update(Document)
		.where(and_(*conditions))
		.values(
			status=DocumentStatus.IN_PROGRESS,
			assigned_staff_id=staff_id,
			assigned_at=now,
		)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def lock_staff_queue(session: AsyncSession, staff_id: str) -> None:
	"""Serialize claims by one staff member until the transaction ends.

	On PostgreSQL this takes a transaction scoped advisory lock keyed on
	the staff id, so the in-progress count read by a concurrent claim
	includes any claim committed before it. Other backends serialize
	writers already and need nothing.
	"""
	if session.get_bind().dialect.name != "postgresql":
		return
	await session.execute(
		select(func.pg_advisory_xact_lock(func.hashtext(f"staff-queue:{staff_id}")))
	)


async def release_document(
	session: AsyncSession,
	document_id: str,
	assigned_staff_id: str | None = None,
) -> bool:
	"""in_progress -> pending, clearing the assignment.

	Args:
		assigned_staff_id: When given, only release if still held by this staff
	"""
	conditions = [
		Document.id == document_id,
		Document.status == DocumentStatus.IN_PROGRESS,
	]
	if assigned_staff_id is not None:
		conditions.append(Document.assigned_staff_id == assigned_staff_id)

	stmt = (
		update(Document)
		.where(and_(*conditions))
		.values(
			status=DocumentStatus.PENDING,
			assigned_staff_id=None,
			assigned_at=None,
		)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def cancel_document(
	session: AsyncSession,
	document_id: str,
	cancelled_by: str,
	reason: str | None,
	now: datetime,
) -> bool:
	stmt = (
		update(Document)
		.where(
			and_(
				Document.id == document_id,
				Document.status.in_(OPEN_STATUSES),
			)
		)
		.values(
			status=DocumentStatus.CANCELLED,
			cancelled_at=now,
			cancelled_by=cancelled_by,
			cancellation_reason=reason,
			assigned_at=None,
		)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def fill_report_slot(
	session: AsyncSession,
	document_id: str,
	report_type: ReportType,
	path: str,
	percentage: float | None,
) -> bool:
	"""Write one report slot if it is still empty (first writer wins).

	The other slot is never touched, so concurrent batches delivering
	different report types for the same document both survive.
	"""
	path_col, pct_col = _slot_columns(report_type)
	stmt = (
		update(Document)
		.where(
			and_(
				Document.id == document_id,
				Document.status.in_(OPEN_STATUSES),
				path_col.is_(None),
			)
		)
		.values({path_col.key: path, pct_col.key: percentage})
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def complete_if_ready(
	session: AsyncSession,
	document_id: str,
	now: datetime,
) -> bool:
	"""Transition to completed if every required report is now present."""
	stmt = (
		update(Document)
		.where(
			and_(
				Document.id == document_id,
				Document.status.in_(OPEN_STATUSES),
				_all_reports_present(),
			)
		)
		.values(
			status=DocumentStatus.COMPLETED,
			completed_at=now,
			assigned_at=None,
		)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def submit_document(
	session: AsyncSession,
	document_id: str,
	reports: dict[ReportType, tuple[str, float | None]],
	percentages: dict[ReportType, float | None],
	remarks: str | None,
	now: datetime,
	assigned_staff_id: str | None = None,
) -> bool:
	"""Write submitted reports and complete the document in one statement.

	Args:
		reports: Uploaded report paths keyed by type
		percentages: Percentages for types without a new upload
		assigned_staff_id: Require the document to be held by this staff;
			None allows any open document (admin submission)
	"""
	conditions = [Document.id == document_id]
	if assigned_staff_id is not None:
		conditions.append(Document.status == DocumentStatus.IN_PROGRESS)
		conditions.append(Document.assigned_staff_id == assigned_staff_id)
	else:
		conditions.append(Document.status.in_(OPEN_STATUSES))

	values: dict = {
		"status": DocumentStatus.COMPLETED,
		"completed_at": now,
		"assigned_at": None,
	}
	if remarks is not None:
		values["remarks"] = remarks

	for report_type in ReportType:
		path_col, pct_col = _slot_columns(report_type)
		if report_type in reports:
			path, pct = reports[report_type]
			values[path_col.key] = path
			values[pct_col.key] = pct
		else:
			if report_type in percentages and percentages[report_type] is not None:
				values[pct_col.key] = percentages[report_type]

	# Slots not supplied now must already be filled where required
	if ReportType.SIMILARITY not in reports:
		conditions.append(Document.similarity_report_path.is_not(None))
	if ReportType.AI not in reports:
		conditions.append(
			or_(
				Document.scan_type == ScanType.SIMILARITY_ONLY,
				Document.ai_report_path.is_not(None),
			)
		)

	stmt = (
		update(Document)
		.where(and_(*conditions))
		.values(values)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def mark_needs_review(
	session: AsyncSession,
	document_id: str,
	reason: str,
) -> bool:
	stmt = (
		update(Document)
		.where(Document.id == document_id)
		.values(needs_review=True, review_reason=reason)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def clear_needs_review(session: AsyncSession, document_id: str) -> bool:
	stmt = (
		update(Document)
		.where(Document.id == document_id)
		.values(needs_review=False, review_reason=None)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


# =====================================================
# Staff settings
# =====================================================


async def get_staff_settings(
	session: AsyncSession,
	staff_id: str,
) -> StaffSettings | None:
	stmt = select(StaffSettings).where(StaffSettings.staff_id == staff_id)
	result = await session.execute(stmt)
	return result.scalar_one_or_none()


async def get_staff_settings_map(
	session: AsyncSession,
	staff_ids: Sequence[str],
) -> dict[str, StaffSettings]:
	if not staff_ids:
		return {}
	stmt = select(StaffSettings).where(StaffSettings.staff_id.in_(list(staff_ids)))
	result = await session.execute(stmt)
	return {row.staff_id: row for row in result.scalars().all()}


async def upsert_staff_settings(
	session: AsyncSession,
	staff_id: str,
	max_concurrent_files: int,
	time_limit_minutes: int,
	assigned_scan_types: list[str] | None = None,
) -> StaffSettings:
	settings = await get_staff_settings(session, staff_id)
	if settings is None:
		settings = StaffSettings(staff_id=staff_id)
		session.add(settings)

	settings.max_concurrent_files = max_concurrent_files
	settings.time_limit_minutes = time_limit_minutes
	settings.assigned_scan_types = assigned_scan_types
	await session.flush()
	return settings


# =====================================================
# Unmatched reports
# =====================================================


async def create_unmatched_report(
	session: AsyncSession,
	file_name: str,
	file_path: str,
	reason: str,
	batch_id: str | None = None,
	report_type: ReportType | None = None,
	percentage: float | None = None,
	matched_document_id: str | None = None,
	suggested_documents: list[dict] | None = None,
	uploaded_by: str | None = None,
) -> UnmatchedReport:
	report = UnmatchedReport(
		batch_id=batch_id,
		file_name=file_name,
		normalized_key=normalize(file_name),
		file_path=file_path,
		report_type=report_type,
		similarity_percentage=percentage if report_type == ReportType.SIMILARITY else None,
		ai_percentage=percentage if report_type == ReportType.AI else None,
		reason=reason,
		matched_document_id=matched_document_id,
		suggested_documents=suggested_documents,
		uploaded_by=uploaded_by,
		resolved=False,
	)
	session.add(report)
	await session.flush()
	return report


async def get_unmatched_report(
	session: AsyncSession,
	report_id: str,
) -> UnmatchedReport | None:
	stmt = (
		select(UnmatchedReport)
		.where(UnmatchedReport.id == report_id)
		.execution_options(populate_existing=True)
	)
	result = await session.execute(stmt)
	return result.scalar_one_or_none()


async def list_unmatched_reports(
	session: AsyncSession,
	resolved: bool | None = False,
	limit: int = 100,
	offset: int = 0,
) -> list[UnmatchedReport]:
	stmt = select(UnmatchedReport)
	if resolved is not None:
		stmt = stmt.where(UnmatchedReport.resolved == resolved)
	stmt = stmt.order_by(UnmatchedReport.uploaded_at.desc()).offset(offset).limit(limit)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def resolve_unmatched_report(
	session: AsyncSession,
	report_id: str,
	document_id: str,
	report_type: ReportType,
	resolved_by: str,
	now: datetime,
) -> bool:
	stmt = (
		update(UnmatchedReport)
		.where(
			and_(
				UnmatchedReport.id == report_id,
				UnmatchedReport.resolved.is_(False),
			)
		)
		.values(
			resolved=True,
			resolved_at=now,
			resolved_by=resolved_by,
			matched_document_id=document_id,
			report_type=report_type,
		)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


async def delete_unmatched_report(session: AsyncSession, report_id: str) -> bool:
	stmt = (
		delete(UnmatchedReport)
		.where(UnmatchedReport.id == report_id)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount == 1


# =====================================================
# Activity
# =====================================================


async def log_activity(
	session: AsyncSession,
	staff_id: str | None,
	document_id: str | None,
	action: str,
) -> ActivityLog:
	entry = ActivityLog(staff_id=staff_id, document_id=document_id, action=action)
	session.add(entry)
	await session.flush()
	return entry


async def list_activity(
	session: AsyncSession,
	document_id: str,
) -> list[ActivityLog]:
	stmt = (
		select(ActivityLog)
		.where(ActivityLog.document_id == document_id)
		.order_by(ActivityLog.created_at.asc())
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())
