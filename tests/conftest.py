# (c) Copyright Datacraft, 2026
"""
Shared test fixtures: in-memory database, document factories, actors,
local report storage and a scripted analyzer.
"""
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from uuid_extensions import uuid7str

from scanbroker.core.db.base import Base
from scanbroker.core.features.auth import Actor
from scanbroker.core.features.documents.db.orm import Document, StaffSettings
from scanbroker.core.features.ingestion.analyzer import (
	AnalyzerError,
	Classification,
	ReportAnalyzer,
)
from scanbroker.core.features.notifications import Notifier
from scanbroker.core.features.reconciliation import normalize
from scanbroker.core.storage.local import LocalStorageBackend
from scanbroker.core.types import DocumentStatus, ReportType, Role, ScanType
from scanbroker.core.utils.tz import utc_now


@pytest.fixture
async def db_engine():
	engine = create_async_engine(
		"sqlite+aiosqlite:///:memory:",
		poolclass=StaticPool,
		connect_args={"check_same_thread": False},
	)
	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)

	yield engine

	await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncSession:
	session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
	async with session_factory() as session:
		yield session


@pytest.fixture
async def make_document(db_session: AsyncSession):
	"""Factory fixture for creating documents.

	Documents are spaced one minute apart by default so upload order is
	deterministic.
	"""
	counter = {"n": 0}
	base_time = utc_now() - timedelta(days=1)

	async def _make_document(
		original_filename: str = "essay.docx",
		scan_type: ScanType = ScanType.FULL,
		status: DocumentStatus = DocumentStatus.PENDING,
		uploaded_at: datetime | None = None,
		**kwargs,
	) -> Document:
		counter["n"] += 1
		document = Document(
			id=uuid7str(),
			owner_id=kwargs.get("owner_id", "customer-1"),
			original_filename=original_filename,
			normalized_key=normalize(original_filename),
			scan_type=scan_type,
			status=status,
			assigned_staff_id=kwargs.get("assigned_staff_id"),
			assigned_at=kwargs.get("assigned_at"),
			similarity_report_path=kwargs.get("similarity_report_path"),
			ai_report_path=kwargs.get("ai_report_path"),
			similarity_percentage=kwargs.get("similarity_percentage"),
			ai_percentage=kwargs.get("ai_percentage"),
			needs_review=kwargs.get("needs_review", False),
			uploaded_at=uploaded_at or base_time + timedelta(minutes=counter["n"]),
		)
		db_session.add(document)
		await db_session.commit()
		await db_session.refresh(document)
		return document

	return _make_document


@pytest.fixture
async def make_staff_settings(db_session: AsyncSession):
	"""Factory fixture for per-staff queue limits."""
	async def _make_staff_settings(
		staff_id: str = "staff-1",
		max_concurrent_files: int = 1,
		time_limit_minutes: int = 30,
		assigned_scan_types: list[str] | None = None,
	) -> StaffSettings:
		row = StaffSettings(
			id=uuid7str(),
			staff_id=staff_id,
			max_concurrent_files=max_concurrent_files,
			time_limit_minutes=time_limit_minutes,
			assigned_scan_types=assigned_scan_types,
		)
		db_session.add(row)
		await db_session.commit()
		await db_session.refresh(row)
		return row

	return _make_staff_settings


@pytest.fixture
def admin() -> Actor:
	return Actor(id="admin-1", role=Role.ADMIN)


@pytest.fixture
def staff() -> Actor:
	return Actor(id="staff-1", role=Role.STAFF)


@pytest.fixture
def other_staff() -> Actor:
	return Actor(id="staff-2", role=Role.STAFF)


@pytest.fixture
def system_actor() -> Actor:
	return Actor(id="scheduler", role=Role.SYSTEM)


@pytest.fixture
def customer() -> Actor:
	return Actor(id="customer-1", role=Role.CUSTOMER)


@pytest.fixture
def storage(tmp_path) -> LocalStorageBackend:
	return LocalStorageBackend(base_path=tmp_path / "storage")


@pytest.fixture
def notifier():
	return AsyncMock(spec=Notifier)


@pytest.fixture
def analyzer():
	"""Analyzer scripted per filename.

	Set `analyzer.results[name]` to a Classification or an AnalyzerError;
	unknown names classify as a similarity report at 10%.
	"""
	results: dict[str, Classification | AnalyzerError] = {}

	async def _analyze(name: str, data: bytes) -> Classification:
		outcome = results.get(name, Classification(report_type=ReportType.SIMILARITY, percentage=10.0))
		if isinstance(outcome, AnalyzerError):
			raise outcome
		return outcome

	mock = MagicMock(spec=ReportAnalyzer)
	mock.analyze = AsyncMock(side_effect=_analyze)
	mock.results = results
	return mock
