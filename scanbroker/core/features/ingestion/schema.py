# (c) Copyright Datacraft, 2026
"""Ingestion Pydantic schemas."""
from pydantic import BaseModel, ConfigDict, Field

from scanbroker.core.types import ReportType


class MappedReport(BaseModel):
	file_name: str
	document_id: str
	report_type: ReportType
	percentage: float | None = None
	storage_path: str
	manual: bool = False

	model_config = ConfigDict(from_attributes=True)


class UnmatchedEntry(BaseModel):
	unmatched_id: str
	file_name: str
	reason: str
	report_type: ReportType | None = None
	matched_document_id: str | None = None
	suggestions: list[dict] = Field(default_factory=list)

	model_config = ConfigDict(from_attributes=True)


class ReviewEntry(BaseModel):
	document_id: str
	file_name: str
	reason: str

	model_config = ConfigDict(from_attributes=True)


class IngestionError(BaseModel):
	file_name: str
	error: str
	source_archive: str | None = None

	model_config = ConfigDict(from_attributes=True)


class IngestionStats(BaseModel):
	total_reports: int = 0
	mapped: int = 0
	unmatched: int = 0
	completed: int = 0
	needs_review: int = 0
	errors: int = 0

	model_config = ConfigDict(from_attributes=True)


class IngestionResult(BaseModel):
	"""Outcome of a bulk report upload."""
	batch_id: str
	stats: IngestionStats
	mapped: list[MappedReport] = Field(default_factory=list)
	unmatched: list[UnmatchedEntry] = Field(default_factory=list)
	needs_review: list[ReviewEntry] = Field(default_factory=list)
	completed_documents: list[str] = Field(default_factory=list)
	errors: list[IngestionError] = Field(default_factory=list)

	model_config = ConfigDict(from_attributes=True)


class AssignUnmatched(BaseModel):
	"""Attach an unmatched report to a document."""
	document_id: str
	# Defaults to the type detected at upload
	report_type: ReportType | None = None
