# (c) Copyright Datacraft, 2026
import io

import pytest

from scanbroker.core.config import Settings
from scanbroker.core.storage import (
	ObjectNotFoundError,
	StorageError,
	get_storage_backend,
	reset_storage_backend,
)
from scanbroker.core.storage.local import LocalStorageBackend


@pytest.fixture
def backend(tmp_path) -> LocalStorageBackend:
	return LocalStorageBackend(base_path=tmp_path, prefix="acme")


async def test_put_get_delete(backend, tmp_path):
	result = await backend.put("reports/a/doc_ai.pdf", b"%PDF-1.7", content_type="application/pdf")

	assert result.size == 8
	assert (tmp_path / "acme" / "reports" / "a" / "doc_ai.pdf").exists()
	assert await backend.exists("reports/a/doc_ai.pdf")
	assert await backend.get("reports/a/doc_ai.pdf") == b"%PDF-1.7"

	await backend.delete("reports/a/doc_ai.pdf")

	assert not await backend.exists("reports/a/doc_ai.pdf")


async def test_put_file_object(backend):
	await backend.put("r.pdf", io.BytesIO(b"%PDF stream"))

	assert await backend.get("r.pdf") == b"%PDF stream"


async def test_get_missing(backend):
	with pytest.raises(ObjectNotFoundError):
		await backend.get("nope.pdf")


async def test_delete_missing_is_ignored(backend):
	await backend.delete("nope.pdf")


async def test_key_cannot_escape_root(backend):
	with pytest.raises(StorageError):
		await backend.put("../../etc/passwd", b"x")


async def test_unusable_key_is_storage_error(backend):
	with pytest.raises(StorageError):
		await backend.put("reports/bad\x00name.pdf", b"x")
	with pytest.raises(StorageError):
		await backend.exists("reports/bad\x00name.pdf")


def test_factory_local(tmp_path):
	reset_storage_backend()
	try:
		backend = get_storage_backend(Settings(storage_local_path=tmp_path / "media"))
		assert isinstance(backend, LocalStorageBackend)
		assert (tmp_path / "media").is_dir()
	finally:
		reset_storage_backend()


def test_factory_linode_needs_bucket():
	with pytest.raises(ValueError):
		get_storage_backend(Settings(storage_backend="linode", linode_bucket_name=None))
