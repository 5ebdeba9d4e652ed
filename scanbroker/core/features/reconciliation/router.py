# (c) Copyright Datacraft, 2026
"""Match preview API router."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scanbroker.core.config import get_settings
from scanbroker.core.db.engine import get_db
from scanbroker.core.features.auth import Actor, require_staff
from scanbroker.core.features.documents.db import api as docs_api

from .matching import MatchThresholds, preview_matches
from .schema import MatchPreview, MatchPreviewRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reconciliation", tags=["Reconciliation"])


@router.post("/preview", response_model=list[MatchPreview])
async def preview(
	data: MatchPreviewRequest,
	session: Annotated[AsyncSession, Depends(get_db)],
	actor: Annotated[Actor, Depends(require_staff)],
):
	"""
	Propose a document for each report filename.

	Nothing is written; the confirmed filename -> document map is sent
	back as manual assignments of a report ingestion request.
	"""
	documents = await docs_api.list_open_documents(session, data.report_type)
	thresholds = MatchThresholds.from_settings(get_settings())

	previews = preview_matches(
		data.report_filenames,
		documents,
		report_type=data.report_type,
		thresholds=thresholds,
	)
	logger.info(
		f"{actor.id} previewed {len(previews)} report names "
		f"({sum(p.is_exact for p in previews)} exact)"
	)
	return [MatchPreview.model_validate(p) for p in previews]
