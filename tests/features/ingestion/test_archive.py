# (c) Copyright Datacraft, 2026
"""
Archive expansion tests.
"""
import io
import random
import zipfile

import pytest

from scanbroker.core.features.ingestion.archive import (
	ArchiveError,
	expand_archive,
	is_archive,
)


def build_zip(entries: dict[str, bytes], compression=zipfile.ZIP_STORED) -> bytes:
	buffer = io.BytesIO()
	with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
		for name, data in entries.items():
			archive.writestr(name, data)
	return buffer.getvalue()


def test_keeps_pdf_entries_by_basename():
	data = build_zip({
		"batch/one.pdf": b"%PDF-1 one",
		"batch/nested/Two.PDF": b"%PDF-1 two",
		"batch/notes.txt": b"ignore me",
		"batch/empty/": b"",
	})

	files = expand_archive("reports.zip", data)

	assert [f.name for f in files] == ["one.pdf", "Two.PDF"]
	assert all(f.content_type == "application/pdf" for f in files)
	assert all(f.source_archive == "reports.zip" for f in files)
	assert files[0].data == b"%PDF-1 one"
	assert all(f.error is None for f in files)


def test_skips_os_metadata():
	data = build_zip({
		"__MACOSX/batch/._one.pdf": b"junk",
		"batch/.hidden.pdf": b"junk",
		"batch/one.pdf": b"%PDF-1 one",
	})

	files = expand_archive("reports.zip", data)

	assert [f.name for f in files] == ["one.pdf"]


def test_corrupt_archive_raises():
	with pytest.raises(ArchiveError) as exc_info:
		expand_archive("broken.zip", b"this is not a zip file")

	assert exc_info.value.name == "broken.zip"


def test_corrupt_entry_keeps_siblings():
	"""One damaged entry is reported, the two good PDFs survive."""
	data = build_zip({
		"a.pdf": b"%PDF-1 first",
		"b.pdf": b"%PDF-1 CORRUPT-ME-PAYLOAD",
		"c.pdf": b"%PDF-1 third",
	})
	data = data.replace(b"CORRUPT-ME-PAYLOAD", b"CORRUPT-ME-PAYLOAX")

	files = expand_archive("reports.zip", data)

	good = [f for f in files if f.error is None]
	bad = [f for f in files if f.error is not None]
	assert [f.name for f in good] == ["a.pdf", "c.pdf"]
	assert [f.name for f in bad] == ["b.pdf"]
	assert bad[0].data == b""


def test_oversized_entry_is_an_error():
	data = build_zip({"big.pdf": b"x" * 100, "small.pdf": b"y"})

	files = expand_archive("reports.zip", data, max_entry_size=10)

	assert files[0].name == "big.pdf" and files[0].error
	assert files[1].name == "small.pdf" and files[1].error is None


@pytest.mark.parametrize(
	"name, content_type, expected",
	[
		("reports.zip", None, True),
		("REPORTS.ZIP", "application/octet-stream", True),
		("upload", "application/zip", True),
		("upload", "application/x-zip-compressed", True),
		("report.pdf", "application/pdf", False),
	],
)
def test_is_archive(name, content_type, expected):
	assert is_archive(name, content_type) is expected


def test_unsupported_zip_version_is_archive_error():
	data = bytearray(build_zip({"a.pdf": b"%PDF-1 first"}))
	central = data.index(b"PK\x01\x02")
	# "version needed to extract" byte of the central directory entry
	data[central + 6] = 0xFF

	with pytest.raises(ArchiveError):
		expand_archive("future.zip", bytes(data))


def test_truncated_archive_is_archive_error():
	data = build_zip({"a.pdf": b"%PDF-1 first" * 50}, compression=zipfile.ZIP_DEFLATED)

	with pytest.raises(ArchiveError):
		expand_archive("cut.zip", data[: len(data) // 2])


def test_damaged_bytes_never_escape():
	"""Any damaged archive yields entries or ArchiveError, nothing else."""
	original = build_zip(
		{
			"one.pdf": b"%PDF-1 first report " * 20,
			"dir/two.pdf": b"%PDF-1 second report " * 20,
			"three.pdf": b"%PDF-1 third report " * 20,
		},
		compression=zipfile.ZIP_DEFLATED,
	)
	rng = random.Random(20260301)

	for _ in range(500):
		data = bytearray(original)
		for _ in range(rng.randint(1, 6)):
			data[rng.randrange(len(data))] = rng.randrange(256)

		try:
			files = expand_archive("fuzzed.zip", bytes(data))
		except ArchiveError:
			continue
		assert all(f.error is None or f.data == b"" for f in files)
