# (c) Copyright Datacraft, 2026
"""Storage backend factory."""

from scanbroker.core.config import Settings, get_settings
from scanbroker.core.types import StorageBackend as StorageBackendType

from .base import StorageBackend


_storage_backend: StorageBackend | None = None


def get_storage_backend(settings: Settings | None = None) -> StorageBackend:
	"""Get configured storage backend.

	Args:
		settings: Application settings (cached global settings if None)

	Returns:
		Storage backend instance
	"""
	global _storage_backend

	if _storage_backend is not None and settings is None:
		return _storage_backend

	backend = _create_backend(settings or get_settings())

	if _storage_backend is None:
		_storage_backend = backend

	return backend


def _create_backend(settings: Settings) -> StorageBackend:
	if settings.storage_backend == StorageBackendType.LOCAL:
		from .local import LocalStorageBackend
		return LocalStorageBackend(
			base_path=settings.storage_local_path,
			prefix=settings.storage_prefix,
		)

	elif settings.storage_backend == StorageBackendType.LINODE:
		if not settings.linode_bucket_name:
			raise ValueError("Linode storage requires SB_LINODE_BUCKET_NAME")
		if not settings.linode_endpoint_url:
			raise ValueError("Linode storage requires SB_LINODE_CLUSTER_ID")

		from .linode import LinodeStorageBackend
		return LinodeStorageBackend(
			access_key_id=settings.linode_access_key_id or "",
			secret_access_key=settings.linode_secret_access_key or "",
			bucket=settings.linode_bucket_name,
			endpoint_url=settings.linode_endpoint_url,
			prefix=settings.storage_prefix,
		)

	else:
		raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


def reset_storage_backend() -> None:
	"""Reset cached storage backend (for testing)."""
	global _storage_backend
	_storage_backend = None
