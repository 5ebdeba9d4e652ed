# (c) Copyright Datacraft, 2026
"""
Match engine.

Proposes, for each incoming report filename, which open document it
belongs to. Matching is purely on normalized filenames:

- exact: normalized keys are equal (confidence 100)
- partial: best sequence-similarity score reaches the partial threshold
- none: nothing close enough, suggestions are still offered

Only exact matches are safe to apply without an operator.
"""
import difflib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Protocol, Sequence

from scanbroker.core.config import Settings
from scanbroker.core.types import OPEN_STATUSES, DocumentStatus, ReportType
from scanbroker.core.utils.tz import as_utc

from .normalizer import normalize

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 100


class MatchStatus(str, Enum):
	EXACT = "exact"
	PARTIAL = "partial"
	NONE = "none"


class MatchableDocument(Protocol):
	id: str
	original_filename: str
	normalized_key: str
	status: DocumentStatus
	uploaded_at: datetime

	def report_path(self, report_type: ReportType) -> str | None: ...


@dataclass(frozen=True)
class MatchThresholds:
	"""Confidence cutoffs, 0-100."""
	partial: int = 60
	none: int = 30
	max_suggestions: int = 5

	def __post_init__(self):
		if not 0 <= self.none <= self.partial <= 100:
			raise ValueError(
				f"Invalid thresholds: none={self.none}, partial={self.partial}"
			)
		if self.max_suggestions < 1:
			raise ValueError("max_suggestions must be positive")

	@classmethod
	def from_settings(cls, settings: Settings) -> "MatchThresholds":
		return cls(
			partial=settings.match_partial_threshold,
			none=settings.match_none_threshold,
			max_suggestions=settings.match_max_suggestions,
		)


@dataclass
class MatchCandidate:
	document_id: str
	original_filename: str
	normalized_key: str
	confidence: int

	def to_dict(self) -> dict:
		return {"id": self.document_id, "confidence": self.confidence}


@dataclass
class MatchPreview:
	report_name: str
	normalized_key: str
	status: MatchStatus
	matched: MatchCandidate | None = None
	suggestions: list[MatchCandidate] = field(default_factory=list)

	@property
	def is_exact(self) -> bool:
		return self.status == MatchStatus.EXACT


def score(key: str, other: str) -> int:
	"""Similarity of two normalized keys, 0-100.

	Only equal keys score 100.
	"""
	if key == other:
		return EXACT_CONFIDENCE
	ratio = difflib.SequenceMatcher(None, key, other).ratio()
	return min(round(ratio * 100), EXACT_CONFIDENCE - 1)


def _age_key(document: MatchableDocument):
	return (as_utc(document.uploaded_at), document.id)


def open_candidates(
	documents: Iterable[MatchableDocument],
	report_type: ReportType | None = None,
) -> list[MatchableDocument]:
	"""Documents a report may be applied to, oldest first."""
	result = []
	for doc in documents:
		if doc.status not in OPEN_STATUSES:
			continue
		if report_type is not None and doc.report_path(report_type) is not None:
			continue
		result.append(doc)
	return sorted(result, key=_age_key)


def _candidate(document: MatchableDocument, confidence: int) -> MatchCandidate:
	return MatchCandidate(
		document_id=document.id,
		original_filename=document.original_filename,
		normalized_key=document.normalized_key,
		confidence=confidence,
	)


def _preview_one(
	report_name: str,
	candidates: list[MatchableDocument],
	thresholds: MatchThresholds,
) -> MatchPreview:
	key = normalize(report_name)
	preview = MatchPreview(
		report_name=report_name,
		normalized_key=key,
		status=MatchStatus.NONE,
	)
	if not candidates:
		return preview

	scored = [(score(key, doc.normalized_key), doc) for doc in candidates]
	# candidates are already oldest first and sorted() is stable
	scored = sorted(scored, key=lambda item: -item[0])

	exact = [(s, doc) for s, doc in scored if s == EXACT_CONFIDENCE]
	fuzzy = [(s, doc) for s, doc in scored if s < EXACT_CONFIDENCE]
	limit = thresholds.max_suggestions

	if exact:
		winner = exact[0][1]
		preview.status = MatchStatus.EXACT
		preview.matched = _candidate(winner, EXACT_CONFIDENCE)
		others = exact[1:] + [
			(s, doc) for s, doc in fuzzy if s >= thresholds.none
		]
		preview.suggestions = [_candidate(doc, s) for s, doc in others[:limit]]
		return preview

	top_score, top_doc = scored[0]
	if top_score >= thresholds.partial:
		preview.status = MatchStatus.PARTIAL
		preview.matched = _candidate(top_doc, top_score)
		preview.suggestions = [
			_candidate(doc, s)
			for s, doc in scored
			if s >= thresholds.none
		][:limit]
		return preview

	preview.suggestions = [
		_candidate(doc, s) for s, doc in scored if s > 0
	][:limit]
	return preview


def preview_matches(
	report_filenames: Sequence[str],
	documents: Iterable[MatchableDocument],
	report_type: ReportType | None = None,
	thresholds: MatchThresholds | None = None,
) -> list[MatchPreview]:
	"""Propose a document for each report filename, in input order.

	Args:
		report_filenames: Names of the incoming report files
		documents: Documents to match against; closed ones are ignored
		report_type: When given, documents already holding this report
			type are not candidates
		thresholds: Confidence cutoffs, defaults when omitted

	Returns:
		One MatchPreview per filename
	"""
	thresholds = thresholds or MatchThresholds()
	candidates = open_candidates(documents, report_type)

	previews = [
		_preview_one(name, candidates, thresholds)
		for name in report_filenames
	]

	logger.debug(
		f"Previewed {len(previews)} reports against {len(candidates)} candidates"
	)
	return previews
