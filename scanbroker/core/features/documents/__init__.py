# (c) Copyright Datacraft, 2026
"""Customer documents and the records hanging off them."""

from .schema import (
	ActivityEntry,
	Document,
	DocumentCreate,
	DocumentList,
	FilenameUpdate,
	UnmatchedReport,
)

__all__ = [
	"ActivityEntry",
	"Document",
	"DocumentCreate",
	"DocumentList",
	"FilenameUpdate",
	"UnmatchedReport",
]
