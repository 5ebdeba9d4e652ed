# (c) Copyright Datacraft, 2026
"""
Queue role policy.

Who may do what to a document, as plain predicates so the rules are
readable in one place and testable without a database.
"""
from datetime import datetime, timedelta

from scanbroker.core.features.auth import Actor
from scanbroker.core.features.documents.db.orm import Document
from scanbroker.core.types import DocumentStatus, Role, ScanType
from scanbroker.core.utils.tz import as_utc, utc_now


def can_work_queue(actor: Actor) -> bool:
	return actor.role in (Role.ADMIN, Role.STAFF)


def can_bypass_concurrency_limit(actor: Actor) -> bool:
	return actor.is_admin


def can_release(actor: Actor) -> bool:
	return actor.is_admin or actor.is_system


def can_cancel(actor: Actor) -> bool:
	return actor.is_admin


def can_submit_for(actor: Actor, document: Document) -> bool:
	"""Admins submit anything; staff only what they hold."""
	if actor.is_admin:
		return True
	return (
		actor.is_staff
		and document.status == DocumentStatus.IN_PROGRESS
		and document.assigned_staff_id == actor.id
	)


def requires_all_reports(actor: Actor) -> bool:
	"""Whether the actor must upload every report the scan type needs."""
	return not actor.is_admin


def scan_type_allowed(assigned_scan_types: list[str] | None, scan_type: ScanType) -> bool:
	# None or empty means no restriction
	if not assigned_scan_types:
		return True
	return ScanType(scan_type).value in assigned_scan_types


def is_overdue(
	document: Document,
	time_limit_minutes: int,
	now: datetime | None = None,
) -> bool:
	"""Advisory: the assignee has held the document at least the time limit."""
	if document.status != DocumentStatus.IN_PROGRESS or document.assigned_at is None:
		return False
	now = now or utc_now()
	elapsed = as_utc(now) - as_utc(document.assigned_at)
	return elapsed >= timedelta(minutes=time_limit_minutes)
