# (c) Copyright Datacraft, 2026
"""Match preview schemas."""

from pydantic import BaseModel, ConfigDict, Field

from scanbroker.core.types import ReportType

from .matching import MatchStatus


class MatchPreviewRequest(BaseModel):
	report_filenames: list[str] = Field(..., min_length=1)
	# Restrict candidates to documents still missing this report type
	report_type: ReportType | None = None


class MatchCandidate(BaseModel):
	document_id: str
	original_filename: str
	normalized_key: str
	confidence: int = Field(..., ge=0, le=100)

	model_config = ConfigDict(from_attributes=True)


class MatchPreview(BaseModel):
	report_name: str
	normalized_key: str
	status: MatchStatus
	matched: MatchCandidate | None = None
	suggestions: list[MatchCandidate] = Field(default_factory=list)

	model_config = ConfigDict(from_attributes=True)
