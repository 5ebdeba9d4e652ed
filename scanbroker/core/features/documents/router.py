# (c) Copyright Datacraft, 2026
"""Documents API router."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scanbroker.core.db.engine import get_db
from scanbroker.core.features.auth import (
	Actor,
	get_current_actor,
	require_admin,
	require_staff,
)
from scanbroker.core.types import DocumentStatus, Role, ScanType

from .db import api as db_api
from .schema import (
	ActivityEntry,
	Document,
	DocumentCreate,
	DocumentList,
	FilenameUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.post("", response_model=Document, status_code=status.HTTP_201_CREATED)
async def create_document(
	data: DocumentCreate,
	session: Annotated[AsyncSession, Depends(get_db)],
	actor: Annotated[Actor, Depends(get_current_actor)],
):
	"""Register an uploaded document in the queue."""
	owner_id = actor.id
	if data.owner_id and actor.role != Role.CUSTOMER:
		owner_id = data.owner_id

	document = await db_api.create_document(
		session,
		original_filename=data.original_filename,
		scan_type=data.scan_type,
		owner_id=owner_id,
		file_path=data.file_path,
	)
	await session.commit()
	logger.info(f"Document {document.id} created for {owner_id}")

	return Document.model_validate(document)


@router.get("", response_model=DocumentList)
async def list_documents(
	session: Annotated[AsyncSession, Depends(get_db)],
	actor: Annotated[Actor, Depends(get_current_actor)],
	status_filter: Annotated[list[DocumentStatus] | None, Query(alias="status")] = None,
	scan_type: ScanType | None = None,
	needs_review: bool | None = None,
	assigned_staff_id: str | None = None,
	limit: Annotated[int, Query(ge=1, le=500)] = 100,
	offset: Annotated[int, Query(ge=0)] = 0,
):
	"""List documents; customers only see their own."""
	owner_id = actor.id if actor.role == Role.CUSTOMER else None

	documents, total = await db_api.list_documents(
		session,
		statuses=status_filter,
		scan_type=scan_type,
		needs_review=needs_review,
		assigned_staff_id=assigned_staff_id,
		owner_id=owner_id,
		limit=limit,
		offset=offset,
	)

	return DocumentList(
		items=[Document.model_validate(d) for d in documents],
		total=total,
		limit=limit,
		offset=offset,
	)


@router.get("/{document_id}", response_model=Document)
async def get_document(
	document_id: str,
	session: Annotated[AsyncSession, Depends(get_db)],
	actor: Annotated[Actor, Depends(get_current_actor)],
):
	document = await db_api.get_document(session, document_id)
	if document is None or (
		actor.role == Role.CUSTOMER and document.owner_id != actor.id
	):
		raise HTTPException(
			status_code=status.HTTP_404_NOT_FOUND,
			detail="Document not found",
		)

	return Document.model_validate(document)


@router.patch("/{document_id}/filename", response_model=Document)
async def update_filename(
	document_id: str,
	data: FilenameUpdate,
	session: Annotated[AsyncSession, Depends(get_db)],
	actor: Annotated[Actor, Depends(require_admin)],
):
	"""Correct a document's filename; its matching key follows."""
	updated = await db_api.rename_document(session, document_id, data.original_filename)
	if not updated:
		raise HTTPException(
			status_code=status.HTTP_404_NOT_FOUND,
			detail="Document not found",
		)

	await session.commit()
	logger.info(f"{actor.id} renamed document {document_id} to {data.original_filename!r}")

	document = await db_api.get_document(session, document_id)
	return Document.model_validate(document)


@router.get("/{document_id}/activity", response_model=list[ActivityEntry])
async def get_activity(
	document_id: str,
	session: Annotated[AsyncSession, Depends(get_db)],
	actor: Annotated[Actor, Depends(require_staff)],
):
	entries = await db_api.list_activity(session, document_id)
	return [ActivityEntry.model_validate(e) for e in entries]
