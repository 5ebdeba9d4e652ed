# (c) Copyright Datacraft, 2026
"""Queue schemas."""
from pydantic import BaseModel, ConfigDict, Field

from scanbroker.core.features.documents.schema import Document
from scanbroker.core.types import ScanType


class ReleaseRequest(BaseModel):
	reason: str | None = Field(None, max_length=1000)


class CancelRequest(BaseModel):
	reason: str = Field(..., min_length=1, max_length=1000)


class StaffSettings(BaseModel):
	staff_id: str
	max_concurrent_files: int
	time_limit_minutes: int
	assigned_scan_types: list[ScanType] | None = None
	is_default: bool = False

	model_config = ConfigDict(from_attributes=True)


class StaffSettingsUpdate(BaseModel):
	max_concurrent_files: int = Field(..., ge=1, le=100)
	time_limit_minutes: int = Field(..., ge=1, le=24 * 60)
	# None lets the staff pick any scan type
	assigned_scan_types: list[ScanType] | None = None


class OverdueDocument(BaseModel):
	document: Document
	time_limit_minutes: int
	elapsed_minutes: int

	model_config = ConfigDict(from_attributes=True)


class ReleasedDocuments(BaseModel):
	released: list[str]
	count: int
