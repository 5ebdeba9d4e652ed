# (c) Copyright Datacraft, 2026
"""Report ingestion API router."""
import json
import logging
from typing import Annotated

from fastapi import (
	APIRouter,
	Depends,
	File,
	Form,
	HTTPException,
	Query,
	UploadFile,
	status,
)
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from scanbroker.core.config import get_settings
from scanbroker.core.db.engine import get_db
from scanbroker.core.features.auth import Actor, require_admin, require_operator
from scanbroker.core.features.documents.schema import Document, UnmatchedReport
from scanbroker.core.features.notifications import get_notifier
from scanbroker.core.features.queue.exceptions import QueueError
from scanbroker.core.features.reconciliation import MatchThresholds
from scanbroker.core.storage import get_storage_backend

from .analyzer import get_report_analyzer
from .schema import AssignUnmatched, IngestionResult
from .service import IncomingFile, ReportIngestionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingestion", tags=["Ingestion"])

_assignments_adapter = TypeAdapter(dict[str, str])


def get_service(
	session: Annotated[AsyncSession, Depends(get_db)],
) -> ReportIngestionService:
	settings = get_settings()
	return ReportIngestionService(
		session=session,
		storage=get_storage_backend(),
		analyzer=get_report_analyzer(settings),
		notifier=get_notifier(settings),
		thresholds=MatchThresholds.from_settings(settings),
		max_file_size=settings.max_file_size_mb * 1024 * 1024,
	)


def _parse_assignments(raw: str | None) -> dict[str, str]:
	if not raw:
		return {}
	try:
		return _assignments_adapter.validate_python(json.loads(raw))
	except (ValueError, ValidationError) as e:
		raise HTTPException(
			status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
			detail=f"manual_assignments must be a JSON object of filename -> document id: {e}",
		)


@router.post("/reports", response_model=IngestionResult)
async def upload_reports(
	service: Annotated[ReportIngestionService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_operator)],
	files: list[UploadFile] = File(...),
	manual_assignments: str | None = Form(None),
):
	"""
	Upload report PDFs and ZIP archives of PDFs.

	`manual_assignments` is the JSON filename -> document id map confirmed
	in a match preview; those files skip automatic matching.
	"""
	assignments = _parse_assignments(manual_assignments)

	incoming = []
	for upload in files:
		data = await upload.read()
		incoming.append(IncomingFile(
			name=upload.filename or "upload",
			data=data,
			content_type=upload.content_type,
		))

	result = await service.ingest(incoming, uploaded_by=actor.id, manual_assignments=assignments)
	return IngestionResult.model_validate(result)


@router.get("/unmatched", response_model=list[UnmatchedReport])
async def list_unmatched(
	service: Annotated[ReportIngestionService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_admin)],
	resolved: bool | None = False,
	limit: Annotated[int, Query(ge=1, le=500)] = 100,
	offset: Annotated[int, Query(ge=0)] = 0,
):
	reports = await service.list_unmatched(resolved=resolved, limit=limit, offset=offset)
	return [UnmatchedReport.model_validate(r) for r in reports]


@router.post("/unmatched/{unmatched_id}/assign", response_model=Document)
async def assign_unmatched(
	unmatched_id: str,
	data: AssignUnmatched,
	service: Annotated[ReportIngestionService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_admin)],
):
	"""Attach an unmatched report to a document chosen by the admin."""
	try:
		document = await service.assign_unmatched(
			unmatched_id,
			data.document_id,
			actor,
			report_type=data.report_type,
		)
	except QueueError as e:
		raise HTTPException(status_code=e.status_code, detail=str(e))

	return Document.model_validate(document)


@router.delete("/unmatched/{unmatched_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_unmatched(
	unmatched_id: str,
	service: Annotated[ReportIngestionService, Depends(get_service)],
	actor: Annotated[Actor, Depends(require_admin)],
):
	try:
		await service.delete_unmatched(unmatched_id, actor)
	except QueueError as e:
		raise HTTPException(status_code=e.status_code, detail=str(e))
