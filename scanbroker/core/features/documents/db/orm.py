# (c) Copyright Datacraft, 2026
"""
ORM models for customer documents, staff queue settings,
unmatched reports and queue activity.
"""
from datetime import datetime

from sqlalchemy import (
	JSON,
	Boolean,
	DateTime,
	Enum,
	Float,
	Index,
	Integer,
	String,
	Text,
	ForeignKey,
)
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7str

from scanbroker.core.db.base import Base
from scanbroker.core.types import DocumentStatus, ReportType, ScanType
from scanbroker.core.utils.tz import utc_now


class Document(Base):
	"""
	A unit of work submitted by a customer.

	Report slots are filled independently, either by staff submission
	or by bulk report ingestion.
	"""
	__tablename__ = "documents"

	id: Mapped[str] = mapped_column(
		String(36),
		primary_key=True,
		default=uuid7str,
	)
	owner_id: Mapped[str | None] = mapped_column(String(64))
	original_filename: Mapped[str] = mapped_column(String(512), nullable=False)
	# normalize(original_filename), refreshed only on filename edits
	normalized_key: Mapped[str] = mapped_column(String(512), nullable=False)
	file_path: Mapped[str | None] = mapped_column(String(1024))
	scan_type: Mapped[ScanType] = mapped_column(
		Enum(ScanType, native_enum=False, length=32),
		default=ScanType.FULL,
		nullable=False,
	)
	status: Mapped[DocumentStatus] = mapped_column(
		Enum(DocumentStatus, native_enum=False, length=32),
		default=DocumentStatus.PENDING,
		nullable=False,
	)

	# Queue assignment
	assigned_staff_id: Mapped[str | None] = mapped_column(String(64))
	assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

	# Report slots
	similarity_report_path: Mapped[str | None] = mapped_column(String(1024))
	ai_report_path: Mapped[str | None] = mapped_column(String(1024))
	similarity_percentage: Mapped[float | None] = mapped_column(Float)
	ai_percentage: Mapped[float | None] = mapped_column(Float)

	# Review
	needs_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	review_reason: Mapped[str | None] = mapped_column(Text)
	remarks: Mapped[str | None] = mapped_column(Text)

	# Cancellation
	cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
	cancelled_by: Mapped[str | None] = mapped_column(String(64))
	cancellation_reason: Mapped[str | None] = mapped_column(Text)

	# Timestamps
	uploaded_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True),
		default=utc_now,
		nullable=False,
	)
	updated_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True),
		default=utc_now,
		onupdate=utc_now,
		nullable=False,
	)
	completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

	def report_path(self, report_type: ReportType) -> str | None:
		match ReportType(report_type):
			case ReportType.SIMILARITY:
				return self.similarity_report_path
			case ReportType.AI:
				return self.ai_report_path

	def __repr__(self) -> str:
		return f"Document({self.id=}, {self.original_filename=}, {self.status=})"

	__table_args__ = (
		Index("ix_documents_status", "status"),
		Index("ix_documents_normalized_key", "normalized_key"),
		Index("ix_documents_assigned_staff", "assigned_staff_id", "status"),
		Index("ix_documents_uploaded", "uploaded_at"),
	)


class StaffSettings(Base):
	"""Per-staff queue limits, owned by admins."""
	__tablename__ = "staff_settings"

	id: Mapped[str] = mapped_column(
		String(36),
		primary_key=True,
		default=uuid7str,
	)
	staff_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
	max_concurrent_files: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
	time_limit_minutes: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
	# None means every scan type
	assigned_scan_types: Mapped[list[str] | None] = mapped_column(JSON)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True),
		default=utc_now,
	)
	updated_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True),
		default=utc_now,
		onupdate=utc_now,
	)


class UnmatchedReport(Base):
	"""
	A report file that ingestion could not map to a document.
	Kept with its stored blob until an operator assigns or deletes it.
	"""
	__tablename__ = "unmatched_reports"

	id: Mapped[str] = mapped_column(
		String(36),
		primary_key=True,
		default=uuid7str,
	)
	batch_id: Mapped[str | None] = mapped_column(String(36))
	file_name: Mapped[str] = mapped_column(String(512), nullable=False)
	normalized_key: Mapped[str] = mapped_column(String(512), nullable=False)
	file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
	report_type: Mapped[ReportType | None] = mapped_column(
		Enum(ReportType, native_enum=False, length=32),
	)
	similarity_percentage: Mapped[float | None] = mapped_column(Float)
	ai_percentage: Mapped[float | None] = mapped_column(Float)
	reason: Mapped[str] = mapped_column(Text, nullable=False)
	# Set when the report matched a document whose slot was already taken
	matched_document_id: Mapped[str | None] = mapped_column(
		String(36),
		ForeignKey("documents.id", ondelete="SET NULL"),
	)
	# [{"id": ..., "confidence": ...}, ...]
	suggested_documents: Mapped[list[dict] | None] = mapped_column(JSON)
	uploaded_by: Mapped[str | None] = mapped_column(String(64))
	uploaded_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True),
		default=utc_now,
	)
	resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
	resolved_by: Mapped[str | None] = mapped_column(String(64))

	@property
	def percentage(self) -> float | None:
		if self.report_type == ReportType.AI:
			return self.ai_percentage
		return self.similarity_percentage

	__table_args__ = (
		Index("ix_unmatched_reports_resolved", "resolved"),
		Index("ix_unmatched_reports_batch", "batch_id"),
	)


class ActivityLog(Base):
	"""Audit trail of queue actions taken by staff and admins."""
	__tablename__ = "activity_logs"

	id: Mapped[str] = mapped_column(
		String(36),
		primary_key=True,
		default=uuid7str,
	)
	staff_id: Mapped[str | None] = mapped_column(String(64))
	document_id: Mapped[str | None] = mapped_column(
		String(36),
		ForeignKey("documents.id", ondelete="CASCADE"),
	)
	action: Mapped[str] = mapped_column(String(255), nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True),
		default=utc_now,
	)

	__table_args__ = (
		Index("ix_activity_logs_document", "document_id"),
		Index("ix_activity_logs_staff", "staff_id"),
	)
