# (c) Copyright Datacraft, 2026
"""
Filename normalization.

Reports produced by the external scanner are named after the document they
were run against, but browsers, archivers and operators decorate the name
on the way: a different extension, a different case, or a "(1)" duplicate
marker. normalize() reduces both sides to the same comparison key.
"""
import re

# Last dot plus suffix, suffix must not cross a path separator
_EXTENSION_RE = re.compile(r"\.[^./\\]+$")
# "report (1)", "report(2) "
_DUPLICATE_MARKER_RE = re.compile(r"\s*\(\d+\)\s*$")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(filename: str) -> str:
	"""Return the comparison key for a filename.

	>>> normalize("Essay (1).PDF")
	'essay'
	>>> normalize("My  Thesis.docx")
	'my thesis'
	"""
	key = filename.lower()
	key = _EXTENSION_RE.sub("", key, count=1)

	while True:
		stripped = _DUPLICATE_MARKER_RE.sub("", key, count=1)
		if stripped == key:
			break
		key = stripped

	key = _WHITESPACE_RE.sub(" ", key)
	return key.strip()
