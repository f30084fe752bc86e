"""
Tests for the HTTP surface.

The app lifespan is not entered: each test overrides the database and writer
dependencies with ones bound to the in-memory engine.
"""
import pytest
from fastapi.testclient import TestClient

from auditlog.api.routes import get_audit_writer
from auditlog.database import get_db
from auditlog.main import app
from auditlog.models.audit import AuditRecord
from auditlog.services.audit_writer import AuditWriter
from conftest import at


@pytest.fixture
def writer(session_factory):
    writer = AuditWriter(session_factory, maxsize=100)
    writer.start()
    yield writer
    writer.stop()


@pytest.fixture
def client(session_factory, writer):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_writer] = lambda: writer
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAppend:

    def test_append_is_accepted_and_written(self, client, writer, db_session):
        response = client.post(
            "/api/audit-logs",
            json={
                "entity_type": "Product",
                "entity_id": "12",
                "action": "UPDATE",
                "old_snapshot": {"sellingPrice": 100},
                "new_snapshot": {"sellingPrice": 150},
                "actor_id": "5",
                "correlation_id": "req-1",
            },
            headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1", "User-Agent": "pytest-agent"},
        )
        writer.join()

        assert response.status_code == 202
        assert response.json() == {"accepted": True}
        record = db_session.query(AuditRecord).one()
        assert record.ip_address == "203.0.113.9"
        assert record.user_agent == "pytest-agent"
        assert record.correlation_id == "req-1"

    def test_unknown_action_is_rejected(self, client):
        response = client.post("/api/audit-logs", json={"entity_type": "Product", "action": "ARCHIVE"})

        assert response.status_code == 422


class TestQueries:

    def test_grouped_operations(self, client, add_record):
        add_record(at(0), correlation_id="S1", entity_type="Sale", action="CREATE")
        add_record(at(1), correlation_id="S1", entity_type="Payment", action="CREATE")
        add_record(at(10), entity_type="Product", action="CREATE")

        response = client.get("/api/audit-logs/grouped", params={"page": 0, "size": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["total_elements"] == 2
        assert body["first"] is True and body["last"] is True
        newest, sale = body["items"]
        assert newest["summary"] == "Mahsulot yaratildi"
        assert sale["group_key"] == "S1"
        assert sale["primary_action_label"] == "Sotuv yaratish"
        assert sale["count"] == 2

    def test_grouped_search(self, client, add_record):
        add_record(at(0), actor_name="Alisher")
        add_record(at(30), actor_name="Bobur", actor_id="u2")

        body = client.get("/api/audit-logs/grouped", params={"search": "bob"}).json()

        assert [op["actor_name"] for op in body["items"]] == ["Bobur"]

    def test_grouped_rejects_bad_page_size(self, client):
        assert client.get("/api/audit-logs/grouped", params={"size": 0}).status_code == 422

    def test_flat_list_and_lookups(self, client, add_record):
        add_record(at(0), entity_type="Customer", entity_id="7", action="CREATE")
        add_record(at(5), entity_type="Sale", entity_id="3", action="UPDATE")

        flat = client.get("/api/audit-logs", params={"entity_type": "Sale"}).json()
        history = client.get("/api/audit-logs/entity/Customer/7").json()

        assert flat["total_elements"] == 1
        assert flat["items"][0]["entity_type"] == "Sale"
        assert [r["entity_id"] for r in history] == ["7"]
        assert client.get("/api/audit-logs/entity-types").json() == ["Customer", "Sale"]
        assert client.get("/api/audit-logs/actions").json() == ["CREATE", "UPDATE"]


class TestDetail:

    def test_detail(self, client, add_record):
        record = add_record(
            at(0),
            entity_type="Product",
            entity_id="5",
            old_snapshot={"sellingPrice": 100, "isActive": True},
            new_snapshot={"sellingPrice": 150, "isActive": True},
        )

        response = client.get(f"/api/audit-logs/{record.id}/detail")

        assert response.status_code == 200
        body = response.json()
        assert body["entity_link"] == "/products/5"
        assert [c["field_name"] for c in body["field_changes"]] == ["sellingPrice"]
        assert body["field_changes"][0]["change_type"] == "MODIFIED"
        assert body["device_info"]["browser"] == "Noma'lum"

    def test_missing_detail_is_404(self, client):
        response = client.get("/api/audit-logs/99999/detail")

        assert response.status_code == 404
        assert response.json()["detail"] == "Audit record not found"


class TestRetentionAndHealth:

    def test_purge(self, client, add_record, db_session):
        add_record(at(0))
        add_record(at(100))

        response = client.delete("/api/audit-logs/retention", params={"before": at(50).isoformat()})

        assert response.json() == {"deleted": 1}
        assert db_session.query(AuditRecord).count() == 1

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
