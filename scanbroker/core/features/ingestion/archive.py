# (c) Copyright Datacraft, 2026
"""
ZIP archive expansion for bulk report uploads.

Operators download reports from the scanner in bulk and upload the
resulting ZIP as is. Only PDF entries are reports; folder structure is
discarded and each entry is named by its basename.
"""
import io
import logging
import posixpath
import struct
import zipfile
import zlib
from dataclasses import dataclass

from scanbroker.core.storage import REPORT_CONTENT_TYPE

logger = logging.getLogger(__name__)

ZIP_CONTENT_TYPES = frozenset({
	"application/zip",
	"application/x-zip-compressed",
	"application/x-zip",
})

# What zipfile raises on damaged input besides BadZipFile
_CORRUPTION_ERRORS = (
	zipfile.BadZipFile,
	zipfile.LargeZipFile,
	zlib.error,
	struct.error,
	NotImplementedError,
	RuntimeError,
	EOFError,
	OverflowError,
	ValueError,
	OSError,
)


class ArchiveError(Exception):
	"""Raised when an archive cannot be opened at all."""

	def __init__(self, name: str, reason: str):
		self.name = name
		self.reason = reason
		super().__init__(f"Cannot read archive {name}: {reason}")


@dataclass
class ExpandedFile:
	"""A report file taken from an upload or an archive entry."""
	name: str
	data: bytes
	content_type: str = REPORT_CONTENT_TYPE
	source_archive: str | None = None
	# Set when this entry could not be extracted; data is empty
	error: str | None = None


def is_archive(name: str, content_type: str | None = None) -> bool:
	if content_type and content_type.lower() in ZIP_CONTENT_TYPES:
		return True
	return name.lower().endswith(".zip")


def is_pdf(name: str, content_type: str | None = None) -> bool:
	if content_type and content_type.lower() == REPORT_CONTENT_TYPE:
		return True
	return name.lower().endswith(".pdf")


def report_basename(name: str) -> str:
	"""Last path component of an upload or entry name, either separator."""
	return posixpath.basename(name.replace("\\", "/"))


def _is_hidden(entry_name: str) -> bool:
	parts = entry_name.split("/")
	if "__MACOSX" in parts:
		return True
	return posixpath.basename(entry_name).startswith(".")


def expand_archive(
	name: str,
	data: bytes,
	max_entry_size: int | None = None,
) -> list[ExpandedFile]:
	"""Flatten a ZIP archive into its PDF entries.

	Args:
		name: Archive filename, used in errors and provenance
		data: Raw archive bytes
		max_entry_size: Entries larger than this (uncompressed) are
			reported as errors instead of being read

	Returns:
		One ExpandedFile per PDF entry, in archive order. Entries that
		fail to decompress carry an error and no data.

	Raises:
		ArchiveError: If the archive itself is corrupt
	"""
	try:
		archive = zipfile.ZipFile(io.BytesIO(data))
	except _CORRUPTION_ERRORS as e:
		raise ArchiveError(name, str(e) or type(e).__name__) from e

	files: list[ExpandedFile] = []
	with archive:
		for info in archive.infolist():
			if info.is_dir() or _is_hidden(info.filename):
				continue

			basename = report_basename(info.filename)
			if not basename.lower().endswith(".pdf"):
				continue

			if max_entry_size is not None and info.file_size > max_entry_size:
				files.append(ExpandedFile(
					name=basename,
					data=b"",
					source_archive=name,
					error=f"Entry exceeds {max_entry_size} bytes",
				))
				continue

			try:
				content = archive.read(info)
			except _CORRUPTION_ERRORS as e:
				logger.warning(f"Failed to extract {info.filename} from {name}: {e}")
				files.append(ExpandedFile(
					name=basename,
					data=b"",
					source_archive=name,
					error=f"Failed to extract: {str(e) or type(e).__name__}",
				))
				continue

			files.append(ExpandedFile(
				name=basename,
				data=content,
				source_archive=name,
			))

	logger.info(f"Expanded {name}: {len(files)} PDF entries")
	return files
