# (c) Copyright Datacraft, 2026
"""Report blobs on the local filesystem (development and tests)."""

import hashlib
from pathlib import Path
from typing import BinaryIO

import aiofiles
import aiofiles.os

from .base import (
	ObjectNotFoundError,
	StorageBackend,
	StorageError,
	UploadResult,
)


class LocalStorageBackend(StorageBackend):
	"""Stores each key as a file below `base_path`."""

	def __init__(self, base_path: str | Path, prefix: str = ""):
		self.base_path = Path(base_path)
		self.prefix = prefix.strip("/")
		self.base_path.mkdir(parents=True, exist_ok=True)
		self._root = self.base_path.resolve()

	def _path(self, key: str) -> Path:
		if "\x00" in key:
			raise StorageError(f"Invalid key: {key!r}")
		relative = key.lstrip("/")
		if self.prefix:
			relative = f"{self.prefix}/{relative}"

		try:
			path = (self.base_path / relative).resolve()
		except (OSError, ValueError) as e:
			raise StorageError(f"Invalid key: {key!r}", e) from e
		if not path.is_relative_to(self._root):
			raise StorageError(f"Key escapes storage root: {key}")
		return path

	async def put(
		self,
		key: str,
		data: bytes | BinaryIO,
		content_type: str | None = None,
		metadata: dict[str, str] | None = None,
	) -> UploadResult:
		# content_type and metadata are not persisted locally
		path = self._path(key)
		body = data if isinstance(data, bytes) else data.read()

		try:
			await aiofiles.os.makedirs(path.parent, exist_ok=True)
			async with aiofiles.open(path, "wb") as f:
				await f.write(body)
		except OSError as e:
			raise StorageError(f"Failed to upload {key}", e) from e

		return UploadResult(key=key, etag=hashlib.md5(body).hexdigest(), size=len(body))

	async def get(self, key: str) -> bytes:
		path = self._path(key)
		if not await aiofiles.os.path.isfile(path):
			raise ObjectNotFoundError(key)

		try:
			async with aiofiles.open(path, "rb") as f:
				return await f.read()
		except OSError as e:
			raise StorageError(f"Failed to get {key}", e) from e

	async def delete(self, key: str) -> None:
		path = self._path(key)
		try:
			await aiofiles.os.remove(path)
		except FileNotFoundError:
			pass
		except OSError as e:
			raise StorageError(f"Failed to delete {key}", e) from e

	async def exists(self, key: str) -> bool:
		return await aiofiles.os.path.isfile(self._path(key))
