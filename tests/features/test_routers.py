# (c) Copyright Datacraft, 2026
"""HTTP surface: role headers, status codes and response shapes."""
import httpx
import pytest

from scanbroker.app import app
from scanbroker.core.config import Settings
from scanbroker.core.db.engine import get_db
from scanbroker.core.features.documents.db import api as docs_api
from scanbroker.core.features.ingestion import router as ingestion_router
from scanbroker.core.features.ingestion.service import ReportIngestionService
from scanbroker.core.features.queue import router as queue_router
from scanbroker.core.features.queue.service import QueueService
from scanbroker.core.types import DocumentStatus, ScanType


def headers(user_id: str, roles: str | None = None) -> dict[str, str]:
	result = {"X-Forwarded-User": user_id}
	if roles:
		result["X-Forwarded-Roles"] = roles
	return result


ADMIN = headers("admin-1", "admin")
STAFF = headers("staff-1", "staff")
SYSTEM = headers("scheduler", "system")
CUSTOMER = headers("customer-1", "customer")


@pytest.fixture
async def client(db_session, storage, analyzer, notifier):
	async def _get_db():
		yield db_session

	app.dependency_overrides[get_db] = _get_db
	app.dependency_overrides[queue_router.get_service] = lambda: QueueService(
		db_session,
		storage=storage,
		notifier=notifier,
		settings=Settings(default_max_concurrent_files=1),
	)
	app.dependency_overrides[ingestion_router.get_service] = lambda: ReportIngestionService(
		db_session, storage, analyzer, notifier
	)

	transport = httpx.ASGITransport(app=app)
	async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
		yield ac

	app.dependency_overrides.clear()


async def test_version(client):
	response = await client.get("/version")

	assert response.status_code == 200
	assert "version" in response.json()


async def test_requires_user_header(client):
	response = await client.get("/documents")

	assert response.status_code == 401


async def test_customer_creates_own_document(client):
	response = await client.post(
		"/documents",
		json={"original_filename": "Essay (1).docx", "owner_id": "someone-else"},
		headers=CUSTOMER,
	)

	assert response.status_code == 201
	body = response.json()
	assert body["owner_id"] == "customer-1"
	assert body["normalized_key"] == "essay"
	assert body["status"] == "pending"


async def test_customer_sees_only_own_documents(client, make_document):
	mine = await make_document("mine.docx", owner_id="customer-1")
	theirs = await make_document("theirs.docx", owner_id="customer-2")

	response = await client.get("/documents", headers=CUSTOMER)
	assert [d["id"] for d in response.json()["items"]] == [mine.id]

	response = await client.get(f"/documents/{theirs.id}", headers=CUSTOMER)
	assert response.status_code == 404

	response = await client.get("/documents", params={"status": "pending"}, headers=ADMIN)
	assert response.json()["total"] == 2


async def test_rename_is_admin_only(client, make_document):
	document = await make_document("draft.docx")

	response = await client.patch(
		f"/documents/{document.id}/filename",
		json={"original_filename": "final.docx"},
		headers=STAFF,
	)
	assert response.status_code == 403

	response = await client.patch(
		f"/documents/{document.id}/filename",
		json={"original_filename": "final.docx"},
		headers=ADMIN,
	)
	assert response.status_code == 200
	assert response.json()["normalized_key"] == "final"


async def test_pick_and_limit(client, make_document):
	first = await make_document("a.docx")
	second = await make_document("b.docx")

	response = await client.post(f"/queue/{first.id}/pick", headers=STAFF)
	assert response.status_code == 200
	assert response.json()["status"] == "in_progress"
	assert response.json()["assigned_staff_id"] == "staff-1"

	response = await client.post(f"/queue/{second.id}/pick", headers=STAFF)
	assert response.status_code == 409
	assert "limit" in response.json()["detail"]

	response = await client.post(f"/queue/{second.id}/pick", headers=CUSTOMER)
	assert response.status_code == 403

	response = await client.post("/queue/missing/pick", headers=ADMIN)
	assert response.status_code == 404


async def test_submit_multipart(client, make_document):
	document = await make_document()
	await client.post(f"/queue/{document.id}/pick", headers=STAFF)

	response = await client.post(
		f"/queue/{document.id}/submit",
		files={"similarity_report": ("sim.pdf", b"%PDF sim", "application/pdf")},
		data={"similarity_percentage": "12.5", "ai_percentage": "3"},
		headers=STAFF,
	)
	assert response.status_code == 422

	response = await client.post(
		f"/queue/{document.id}/submit",
		files={
			"similarity_report": ("sim.pdf", b"%PDF sim", "application/pdf"),
			"ai_report": ("ai.pdf", b"%PDF ai", "application/pdf"),
		},
		data={"similarity_percentage": "12.5", "ai_percentage": "3", "remarks": "ok"},
		headers=STAFF,
	)
	assert response.status_code == 200
	body = response.json()
	assert body["status"] == "completed"
	assert body["similarity_percentage"] == 12.5
	assert body["assigned_at"] is None


async def test_release_and_cancel_roles(client, make_document):
	document = await make_document()
	await client.post(f"/queue/{document.id}/pick", headers=STAFF)

	response = await client.post(f"/queue/{document.id}/release", headers=STAFF)
	assert response.status_code == 403

	response = await client.post(
		f"/queue/{document.id}/release", json={"reason": "shift ended"}, headers=SYSTEM
	)
	assert response.status_code == 200
	assert response.json()["status"] == "pending"

	response = await client.post(f"/queue/{document.id}/cancel", json={}, headers=ADMIN)
	assert response.status_code == 422

	response = await client.post(
		f"/queue/{document.id}/cancel", json={"reason": "duplicate"}, headers=ADMIN
	)
	assert response.status_code == 200
	assert response.json()["status"] == "cancelled"

	response = await client.post(
		f"/queue/{document.id}/cancel", json={"reason": "again"}, headers=ADMIN
	)
	assert response.status_code == 409


async def test_staff_settings_endpoints(client):
	response = await client.get("/queue/staff/staff-1/settings", headers=STAFF)
	assert response.status_code == 200
	assert response.json()["is_default"] is True

	response = await client.get("/queue/staff/staff-2/settings", headers=STAFF)
	assert response.status_code == 403

	response = await client.put(
		"/queue/staff/staff-1/settings",
		json={"max_concurrent_files": 4, "time_limit_minutes": 20},
		headers=ADMIN,
	)
	assert response.status_code == 200
	assert response.json()["max_concurrent_files"] == 4


async def test_match_preview(client, make_document):
	document = await make_document("EssayJohn.docx")

	response = await client.post(
		"/reconciliation/preview",
		json={"report_filenames": ["essayjohn (3).pdf", "zzz.pdf"]},
		headers=STAFF,
	)

	assert response.status_code == 200
	exact, other = response.json()
	assert exact["status"] == "exact"
	assert exact["matched"]["document_id"] == document.id
	assert exact["matched"]["confidence"] == 100
	assert other["matched"] is None


async def test_ingest_and_resolve_unmatched(client, db_session, make_document):
	target = await make_document("EssayJohn.docx", scan_type=ScanType.SIMILARITY_ONLY)

	response = await client.post(
		"/ingestion/reports",
		files=[("files", ("essay_jon.pdf", b"%PDF report", "application/pdf"))],
		headers=STAFF,
	)
	assert response.status_code == 403

	response = await client.post(
		"/ingestion/reports",
		files=[("files", ("essay_jon.pdf", b"%PDF report", "application/pdf"))],
		headers=SYSTEM,
	)
	assert response.status_code == 200
	result = response.json()
	assert result["stats"]["unmatched"] == 1
	assert result["unmatched"][0]["suggestions"][0]["id"] == target.id

	response = await client.get("/ingestion/unmatched", headers=ADMIN)
	assert [r["file_name"] for r in response.json()] == ["essay_jon.pdf"]
	unmatched_id = response.json()[0]["id"]

	response = await client.post(
		f"/ingestion/unmatched/{unmatched_id}/assign",
		json={"document_id": target.id},
		headers=ADMIN,
	)
	assert response.status_code == 200
	assert response.json()["status"] == "completed"

	current = await docs_api.get_document(db_session, target.id)
	assert current.status == DocumentStatus.COMPLETED


async def test_manual_assignments_must_be_json(client):
	response = await client.post(
		"/ingestion/reports",
		files=[("files", ("a.pdf", b"%PDF", "application/pdf"))],
		data={"manual_assignments": "not json"},
		headers=ADMIN,
	)

	assert response.status_code == 422


async def test_delete_unmatched(client):
	response = await client.delete("/ingestion/unmatched/missing", headers=ADMIN)
	assert response.status_code == 404

	response = await client.post(
		"/ingestion/reports",
		files=[("files", ("orphan.pdf", b"%PDF", "application/pdf"))],
		headers=ADMIN,
	)
	unmatched_id = response.json()["unmatched"][0]["unmatched_id"]

	response = await client.delete(f"/ingestion/unmatched/{unmatched_id}", headers=ADMIN)
	assert response.status_code == 204
