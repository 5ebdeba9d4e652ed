# (c) Copyright Datacraft, 2026
"""Report blob storage interface.

Reports are addressed by path-like keys such as
`reports/bulk/<batch>/<ms>_<name>.pdf`; a backend only needs to put, read,
delete and check for them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO


REPORT_CONTENT_TYPE = "application/pdf"


class StorageError(Exception):
	"""A backend operation failed."""

	def __init__(self, message: str, cause: Exception | None = None):
		self.cause = cause
		super().__init__(message)


class ObjectNotFoundError(StorageError):
	def __init__(self, key: str):
		self.key = key
		super().__init__(f"Object not found: {key}")


@dataclass
class UploadResult:
	key: str
	etag: str
	version_id: str | None = None
	size: int = 0


class StorageBackend(ABC):

	@abstractmethod
	async def put(
		self,
		key: str,
		data: bytes | BinaryIO,
		content_type: str | None = None,
		metadata: dict[str, str] | None = None,
	) -> UploadResult:
		"""Store `data` under `key`, replacing any previous object.

		Raises:
			StorageError: Upload failed
		"""

	@abstractmethod
	async def get(self, key: str) -> bytes:
		"""Read an object.

		Raises:
			ObjectNotFoundError: No object under `key`
		"""

	@abstractmethod
	async def delete(self, key: str) -> None:
		"""Remove an object; absent keys are not an error."""

	@abstractmethod
	async def exists(self, key: str) -> bool:
		...
