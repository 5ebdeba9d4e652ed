# (c) Copyright Datacraft, 2026
"""Filename-based reconciliation of report files against documents."""

from .matching import (
	MatchCandidate,
	MatchPreview,
	MatchStatus,
	MatchThresholds,
	preview_matches,
)
from .normalizer import normalize

__all__ = [
	"MatchCandidate",
	"MatchPreview",
	"MatchStatus",
	"MatchThresholds",
	"normalize",
	"preview_matches",
]
