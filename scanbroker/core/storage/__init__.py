# (c) Copyright Datacraft, 2026
"""Report storage abstraction layer."""
from .base import (
	REPORT_CONTENT_TYPE,
	ObjectNotFoundError,
	StorageBackend,
	StorageError,
	UploadResult,
)
from .factory import get_storage_backend, reset_storage_backend

__all__ = [
	"REPORT_CONTENT_TYPE",
	"ObjectNotFoundError",
	"StorageBackend",
	"StorageError",
	"UploadResult",
	"get_storage_backend",
	"reset_storage_backend",
]
