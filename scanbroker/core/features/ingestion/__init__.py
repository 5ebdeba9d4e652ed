# (c) Copyright Datacraft, 2026
"""Bulk report ingestion."""

from .analyzer import (
	AnalyzerError,
	Classification,
	HttpReportAnalyzer,
	ReportAnalyzer,
)
from .archive import ArchiveError, ExpandedFile, expand_archive, is_archive
from .service import (
	IncomingFile,
	IncomingReport,
	IngestionResult,
	ReportIngestionService,
)

__all__ = [
	"AnalyzerError",
	"ArchiveError",
	"Classification",
	"ExpandedFile",
	"HttpReportAnalyzer",
	"IncomingFile",
	"IncomingReport",
	"IngestionResult",
	"ReportAnalyzer",
	"ReportIngestionService",
	"expand_archive",
	"is_archive",
]
