# (c) Copyright Datacraft, 2026
from datetime import datetime, timedelta, timezone

from scanbroker.core.features.auth import Actor
from scanbroker.core.features.documents.db.orm import Document
from scanbroker.core.features.queue import policy
from scanbroker.core.types import DocumentStatus, Role, ScanType

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def held(staff_id="staff-1", minutes_ago=0, status=DocumentStatus.IN_PROGRESS) -> Document:
	return Document(
		id="doc-1",
		original_filename="essay.docx",
		normalized_key="essay",
		scan_type=ScanType.FULL,
		status=status,
		assigned_staff_id=staff_id,
		assigned_at=NOW - timedelta(minutes=minutes_ago),
	)


def test_queue_roles(admin, staff, system_actor, customer):
	assert policy.can_work_queue(admin)
	assert policy.can_work_queue(staff)
	assert not policy.can_work_queue(customer)
	assert not policy.can_work_queue(system_actor)

	assert policy.can_bypass_concurrency_limit(admin)
	assert not policy.can_bypass_concurrency_limit(staff)


def test_release_and_cancel_roles(admin, staff, system_actor):
	"""Staff never release; only admins cancel."""
	assert policy.can_release(admin)
	assert policy.can_release(system_actor)
	assert not policy.can_release(staff)

	assert policy.can_cancel(admin)
	assert not policy.can_cancel(system_actor)
	assert not policy.can_cancel(staff)


def test_can_submit_for(admin, staff, other_staff):
	document = held("staff-1")

	assert policy.can_submit_for(staff, document)
	assert not policy.can_submit_for(other_staff, document)
	assert policy.can_submit_for(admin, document)
	assert policy.can_submit_for(admin, held(None, status=DocumentStatus.PENDING))
	assert not policy.can_submit_for(staff, held("staff-1", status=DocumentStatus.PENDING))


def test_requires_all_reports():
	assert policy.requires_all_reports(Actor("staff-1", Role.STAFF))
	assert not policy.requires_all_reports(Actor("admin-1", Role.ADMIN))


def test_scan_type_allowed():
	assert policy.scan_type_allowed(None, ScanType.FULL)
	assert policy.scan_type_allowed([], ScanType.FULL)
	assert policy.scan_type_allowed(["full"], ScanType.FULL)
	assert not policy.scan_type_allowed(["similarity_only"], ScanType.FULL)


def test_is_overdue_boundary():
	"""Overdue once the elapsed time reaches the limit."""
	assert not policy.is_overdue(held(minutes_ago=29), 30, NOW)
	assert policy.is_overdue(held(minutes_ago=30), 30, NOW)
	assert policy.is_overdue(held(minutes_ago=90), 30, NOW)


def test_is_overdue_only_for_in_progress():
	document = held(minutes_ago=90, status=DocumentStatus.COMPLETED)
	assert not policy.is_overdue(document, 30, NOW)

	document = held(minutes_ago=90)
	document.assigned_at = None
	assert not policy.is_overdue(document, 30, NOW)


def test_is_overdue_accepts_naive_timestamps():
	document = held(minutes_ago=45)
	document.assigned_at = document.assigned_at.replace(tzinfo=None)
	assert policy.is_overdue(document, 30, NOW)
