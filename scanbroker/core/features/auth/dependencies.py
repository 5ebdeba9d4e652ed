# (c) Copyright Datacraft, 2026
"""
Actor resolution.

Authentication happens upstream (reverse proxy / identity gateway); the
proxy forwards the user id and a comma separated role list in headers.
"""
import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from scanbroker.core.config import get_settings
from scanbroker.core.types import Role

logger = logging.getLogger(__name__)

# Highest privilege first
_ROLE_PRECEDENCE = (Role.ADMIN, Role.SYSTEM, Role.STAFF, Role.CUSTOMER)


@dataclass(frozen=True)
class Actor:
	id: str
	role: Role

	@property
	def is_admin(self) -> bool:
		return self.role == Role.ADMIN

	@property
	def is_system(self) -> bool:
		return self.role == Role.SYSTEM

	@property
	def is_staff(self) -> bool:
		return self.role == Role.STAFF


def parse_role(raw: str | None) -> Role:
	"""Pick the most privileged known role from a header value."""
	if not raw:
		return Role.CUSTOMER

	names = {part.strip().lower() for part in raw.split(",") if part.strip()}
	for role in _ROLE_PRECEDENCE:
		if role.value in names:
			return role
	return Role.CUSTOMER


def get_current_actor(request: Request) -> Actor:
	settings = get_settings()
	user_id = request.headers.get(settings.remote_user_header)
	if not user_id:
		raise HTTPException(
			status_code=status.HTTP_401_UNAUTHORIZED,
			detail="Not authenticated",
		)

	role = parse_role(request.headers.get(settings.remote_roles_header))
	return Actor(id=user_id, role=role)


def require_staff(
	actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
	"""Staff, admins and the system account may work the queue."""
	if actor.role == Role.CUSTOMER:
		logger.warning(f"Customer {actor.id} denied staff endpoint")
		raise HTTPException(
			status_code=status.HTTP_403_FORBIDDEN,
			detail="Staff access required",
		)
	return actor


def require_admin(
	actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
	if not actor.is_admin:
		logger.warning(f"User {actor.id} ({actor.role.value}) denied admin endpoint")
		raise HTTPException(
			status_code=status.HTTP_403_FORBIDDEN,
			detail="Admin access required",
		)
	return actor


def require_operator(
	actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
	"""Admins or the system account (automation)."""
	if not (actor.is_admin or actor.is_system):
		logger.warning(f"User {actor.id} ({actor.role.value}) denied operator endpoint")
		raise HTTPException(
			status_code=status.HTTP_403_FORBIDDEN,
			detail="Admin or system access required",
		)
	return actor
