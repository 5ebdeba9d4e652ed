# (c) Copyright Datacraft, 2026
"""
Filename normalization tests.
"""
import pytest

from scanbroker.core.features.reconciliation import normalize


def test_case_and_extension_insensitive():
	"""Report naming noise does not change the key."""
	assert normalize("Report (2).PDF") == normalize("report.pdf")
	assert normalize("EssayJohn.docx") == "essayjohn"
	assert normalize("EssayJohn (1).pdf") == "essayjohn"


@pytest.mark.parametrize(
	"filename, expected",
	[
		("a (1) (2).pdf", "a"),
		("My   Thesis\tFinal.docx", "my thesis final"),
		("  spaced out .pdf", "spaced out"),
		("archive.tar.gz", "archive.tar"),
		("no_extension", "no_extension"),
		("chapter (12)", "chapter"),
		("version (v2).pdf", "version (v2)"),
	],
)
def test_normalize_examples(filename, expected):
	assert normalize(filename) == expected


def test_only_last_extension_removed():
	"""Dotted stems keep everything before the final dot."""
	assert normalize("report.v2.final.pdf") == "report.v2.final"


def test_extension_does_not_cross_path_separator():
	assert normalize("folder.v1/report") == "folder.v1/report"


def test_idempotent_for_undotted_stems():
	for name in ["Essay (3).PDF", "  My  Report .docx", "plain"]:
		once = normalize(name)
		assert normalize(once) == once
