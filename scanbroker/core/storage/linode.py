# (c) Copyright Datacraft, 2026
"""Report blobs on Linode Object Storage (S3 compatible)."""

from typing import BinaryIO

import aioboto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .base import (
	ObjectNotFoundError,
	StorageBackend,
	StorageError,
	UploadResult,
)

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


def _is_missing(error: ClientError) -> bool:
	return error.response.get("Error", {}).get("Code") in _MISSING_CODES


class LinodeStorageBackend(StorageBackend):
	"""One bucket, optionally namespaced by a key prefix."""

	def __init__(
		self,
		access_key_id: str,
		secret_access_key: str,
		bucket: str,
		endpoint_url: str,
		prefix: str = "",
	):
		self.bucket = bucket
		self.endpoint_url = endpoint_url
		self.prefix = prefix.strip("/")

		self._session = aioboto3.Session(
			aws_access_key_id=access_key_id,
			aws_secret_access_key=secret_access_key,
		)
		self._config = Config(
			signature_version="s3v4",
			s3={"addressing_style": "virtual"},
			retries={"max_attempts": 3, "mode": "adaptive"},
		)

	def _object_key(self, key: str) -> str:
		key = key.lstrip("/")
		return f"{self.prefix}/{key}" if self.prefix else key

	def _client(self):
		return self._session.client(
			"s3",
			endpoint_url=self.endpoint_url,
			config=self._config,
		)

	async def put(
		self,
		key: str,
		data: bytes | BinaryIO,
		content_type: str | None = None,
		metadata: dict[str, str] | None = None,
	) -> UploadResult:
		body = data if isinstance(data, bytes) else data.read()
		extra = {}
		if content_type:
			extra["ContentType"] = content_type
		if metadata:
			extra["Metadata"] = metadata

		try:
			async with self._client() as s3:
				response = await s3.put_object(
					Bucket=self.bucket,
					Key=self._object_key(key),
					Body=body,
					**extra,
				)
		except Exception as e:
			raise StorageError(f"Failed to upload {key}", e) from e

		return UploadResult(
			key=key,
			etag=response.get("ETag", "").strip('"'),
			version_id=response.get("VersionId"),
			size=len(body),
		)

	async def get(self, key: str) -> bytes:
		try:
			async with self._client() as s3:
				response = await s3.get_object(Bucket=self.bucket, Key=self._object_key(key))
				async with response["Body"] as stream:
					return await stream.read()
		except ClientError as e:
			if _is_missing(e):
				raise ObjectNotFoundError(key) from e
			raise StorageError(f"Failed to get {key}", e) from e
		except Exception as e:
			raise StorageError(f"Failed to get {key}", e) from e

	async def delete(self, key: str) -> None:
		# S3 DeleteObject succeeds for absent keys
		try:
			async with self._client() as s3:
				await s3.delete_object(Bucket=self.bucket, Key=self._object_key(key))
		except Exception as e:
			raise StorageError(f"Failed to delete {key}", e) from e

	async def exists(self, key: str) -> bool:
		try:
			async with self._client() as s3:
				await s3.head_object(Bucket=self.bucket, Key=self._object_key(key))
		except ClientError as e:
			if _is_missing(e):
				return False
			raise StorageError(f"Failed to check {key}", e) from e
		return True
