# (c) Copyright Datacraft, 2026
"""Document processing queue."""

from .exceptions import (
	ConcurrencyLimitError,
	DocumentNotFoundError,
	InvalidTransitionError,
	MissingReportError,
	NotAuthorizedError,
	QueueError,
	ScanTypeNotAllowedError,
)

__all__ = [
	"ConcurrencyLimitError",
	"DocumentNotFoundError",
	"InvalidTransitionError",
	"MissingReportError",
	"NotAuthorizedError",
	"QueueError",
	"ScanTypeNotAllowedError",
]
