# (c) Copyright Datacraft, 2026
"""Caller identity taken from trusted upstream headers."""

from .dependencies import (
	Actor,
	get_current_actor,
	require_admin,
	require_operator,
	require_staff,
)

__all__ = [
	"Actor",
	"get_current_actor",
	"require_admin",
	"require_operator",
	"require_staff",
]
