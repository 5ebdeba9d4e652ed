# (c) Copyright Datacraft, 2026
"""Queue API router."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from scanbroker.core.db.engine import get_db
from scanbroker.core.features.auth import (
	Actor,
	require_admin,
	require_operator,
	require_staff,
)
from scanbroker.core.features.documents.schema import Document
from scanbroker.core.features.notifications import get_notifier
from scanbroker.core.storage import StorageError, get_storage_backend

from .exceptions import QueueError
from .schema import (
	CancelRequest,
	OverdueDocument,
	ReleasedDocuments,
	ReleaseRequest,
	StaffSettings,
	StaffSettingsUpdate,
)
from .service import QueueService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/queue", tags=["Queue"])


def get_service(
	session: Annotated[AsyncSession, Depends(get_db)],
) -> QueueService:
	return QueueService(
		session=session,
		storage=get_storage_backend(),
		notifier=get_notifier(),
	)


def _http_error(e: QueueError) -> HTTPException:
	return HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/overdue", response_model=list[OverdueDocument])
async def list_overdue(
	service: Annotated[QueueService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_staff)],
):
	"""Documents held longer than their assignee's time limit."""
	items = await service.list_overdue()
	return [OverdueDocument.model_validate(item) for item in items]


@router.post("/release-overdue", response_model=ReleasedDocuments)
async def release_overdue(
	service: Annotated[QueueService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_operator)],
):
	try:
		released = await service.release_overdue(actor)
	except QueueError as e:
		raise _http_error(e)
	return ReleasedDocuments(released=released, count=len(released))


@router.get("/staff/{staff_id}/settings", response_model=StaffSettings)
async def get_staff_settings(
	staff_id: str,
	service: Annotated[QueueService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_staff)],
):
	if not actor.is_admin and actor.id != staff_id:
		raise HTTPException(
			status_code=status.HTTP_403_FORBIDDEN,
			detail="Cannot view another staff member's settings",
		)
	settings = await service.get_staff_settings(staff_id)
	return StaffSettings.model_validate(settings)


@router.put("/staff/{staff_id}/settings", response_model=StaffSettings)
async def update_staff_settings(
	staff_id: str,
	data: StaffSettingsUpdate,
	service: Annotated[QueueService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_admin)],
):
	try:
		settings = await service.update_staff_settings(
			staff_id,
			actor,
			max_concurrent_files=data.max_concurrent_files,
			time_limit_minutes=data.time_limit_minutes,
			assigned_scan_types=data.assigned_scan_types,
		)
	except QueueError as e:
		raise _http_error(e)
	return StaffSettings.model_validate(settings)


@router.post("/{document_id}/pick", response_model=Document)
async def pick(
	document_id: str,
	service: Annotated[QueueService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_staff)],
):
	"""Claim a pending document."""
	try:
		document = await service.pick(document_id, actor)
	except QueueError as e:
		raise _http_error(e)
	return Document.model_validate(document)


@router.post("/{document_id}/submit", response_model=Document)
async def submit(
	document_id: str,
	service: Annotated[QueueService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_staff)],
	similarity_report: UploadFile | None = File(None),
	ai_report: UploadFile | None = File(None),
	similarity_percentage: float | None = Form(None, ge=0, le=100),
	ai_percentage: float | None = Form(None, ge=0, le=100),
	remarks: str | None = Form(None),
):
	"""Upload the finished reports and complete the document."""
	similarity_data = await similarity_report.read() if similarity_report else None
	ai_data = await ai_report.read() if ai_report else None

	try:
		document = await service.submit(
			document_id,
			actor,
			similarity_report=similarity_data,
			ai_report=ai_data,
			similarity_percentage=similarity_percentage,
			ai_percentage=ai_percentage,
			remarks=remarks,
		)
	except QueueError as e:
		raise _http_error(e)
	except StorageError as e:
		logger.error(f"Report upload failed for {document_id}: {e}")
		raise HTTPException(
			status_code=status.HTTP_502_BAD_GATEWAY,
			detail="Report upload failed",
		)
	return Document.model_validate(document)


@router.post("/{document_id}/release", response_model=Document)
async def release(
	document_id: str,
	service: Annotated[QueueService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_operator)],
	data: ReleaseRequest | None = None,
):
	try:
		document = await service.release(
			document_id, actor, reason=data.reason if data else None
		)
	except QueueError as e:
		raise _http_error(e)
	return Document.model_validate(document)


@router.post("/{document_id}/cancel", response_model=Document)
async def cancel(
	document_id: str,
	data: CancelRequest,
	service: Annotated[QueueService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_admin)],
):
	try:
		document = await service.cancel(document_id, actor, reason=data.reason)
	except QueueError as e:
		raise _http_error(e)
	return Document.model_validate(document)
