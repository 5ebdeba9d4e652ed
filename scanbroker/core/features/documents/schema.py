# (c) Copyright Datacraft, 2026
"""Document schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from scanbroker.core.types import DocumentStatus, ReportType, ScanType


class Document(BaseModel):
	"""Document model."""
	id: str
	owner_id: str | None = None
	original_filename: str
	normalized_key: str
	scan_type: ScanType
	status: DocumentStatus
	assigned_staff_id: str | None = None
	assigned_at: datetime | None = None
	similarity_report_path: str | None = None
	ai_report_path: str | None = None
	similarity_percentage: float | None = None
	ai_percentage: float | None = None
	needs_review: bool = False
	review_reason: str | None = None
	remarks: str | None = None
	cancelled_at: datetime | None = None
	cancelled_by: str | None = None
	cancellation_reason: str | None = None
	uploaded_at: datetime
	completed_at: datetime | None = None

	model_config = ConfigDict(from_attributes=True)


class DocumentCreate(BaseModel):
	"""Create document request."""
	original_filename: str = Field(..., min_length=1, max_length=512)
	scan_type: ScanType = ScanType.FULL
	file_path: str | None = Field(None, max_length=1024)
	# Defaults to the calling customer
	owner_id: str | None = Field(None, max_length=64)


class FilenameUpdate(BaseModel):
	original_filename: str = Field(..., min_length=1, max_length=512)


class DocumentList(BaseModel):
	items: list[Document]
	total: int
	limit: int
	offset: int


class UnmatchedReport(BaseModel):
	"""Report file waiting for manual assignment."""
	id: str
	batch_id: str | None = None
	file_name: str
	normalized_key: str
	file_path: str
	report_type: ReportType | None = None
	similarity_percentage: float | None = None
	ai_percentage: float | None = None
	reason: str
	matched_document_id: str | None = None
	suggested_documents: list[dict] | None = None
	uploaded_by: str | None = None
	uploaded_at: datetime | None = None
	resolved: bool = False
	resolved_at: datetime | None = None
	resolved_by: str | None = None

	model_config = ConfigDict(from_attributes=True)


class ActivityEntry(BaseModel):
	id: str
	staff_id: str | None = None
	document_id: str | None = None
	action: str
	created_at: datetime | None = None

	model_config = ConfigDict(from_attributes=True)
