# (c) Copyright Datacraft, 2026
"""Shared enumerations."""
from enum import Enum


class StorageBackend(str, Enum):
	LOCAL = "local"
	LINODE = "linode"


class DocumentStatus(str, Enum):
	PENDING = "pending"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"
	CANCELLED = "cancelled"


# Statuses a report may still be reconciled against
OPEN_STATUSES = (DocumentStatus.PENDING, DocumentStatus.IN_PROGRESS)


class ScanType(str, Enum):
	FULL = "full"
	SIMILARITY_ONLY = "similarity_only"


class ReportType(str, Enum):
	SIMILARITY = "similarity"
	AI = "ai"


def required_report_types(scan_type: ScanType) -> tuple[ReportType, ...]:
	"""Report types that must be present before a document can complete."""
	match ScanType(scan_type):
		case ScanType.FULL:
			return (ReportType.SIMILARITY, ReportType.AI)
		case ScanType.SIMILARITY_ONLY:
			return (ReportType.SIMILARITY,)


class Role(str, Enum):
	ADMIN = "admin"
	STAFF = "staff"
	CUSTOMER = "customer"
	SYSTEM = "system"
