from __future__ import annotations

from fastapi.testclient import TestClient

from api.main import create_app
from compliance.audit_logger import AuditLogger
from engine.command_engine import CommandEngine
from memory.conversation_store import ConversationStore
from tools.customer_repository import JsonCustomerRepository


def _client(tmp_path) -> TestClient:
    engine = CommandEngine(
        customers=JsonCustomerRepository(path=""),
        conversations=ConversationStore(),
        audit_logger=AuditLogger(path=str(tmp_path / "audit.log.jsonl")),
    )
    return TestClient(create_app(engine=engine))


def test_create_dialogue_over_http(tmp_path):
    client = _client(tmp_path)
    first = client.post("/command", json={"text": "create customer Jane"})
    assert first.status_code == 200
    body = first.json()
    assert body["actionType"] == "create_customer"
    assert body["customerData"]["name"] == "Jane"
    assert body["customerData"]["email"] is None
    cid = body["conversationId"]
    assert cid.startswith("conv_")

    assert client.post("/command", json={"text": "skip", "conversationId": cid}).status_code == 200
    summary = client.post("/command", json={"text": "skip", "conversationId": cid}).json()
    assert summary["needsConfirmation"] is True

    done = client.post(
        "/command/confirm",
        json={"conversationId": cid, "confirmed": True, "actionType": "create_customer"},
    )
    assert done.status_code == 200
    assert done.json()["data"]["customer"]["id"] == "c1"

    again = client.post("/command/confirm", json={"conversationId": cid, "confirmed": True})
    assert again.status_code == 400
    assert again.json()["response"] == "Conversation expired or not found. Please start over."


def test_schema_violations_are_400(tmp_path):
    client = _client(tmp_path)
    missing = client.post("/command", json={"conversationId": "conv_1_x"})
    assert missing.status_code == 400
    assert missing.json()["response"] == "Invalid request format."
    assert missing.json()["details"][0]["field"] == "text"

    empty = client.post("/command", json={"text": ""})
    assert empty.status_code == 400

    not_bool = client.post("/command/confirm", json={"conversationId": "conv_1_x", "confirmed": "yes"})
    assert not_bool.status_code == 400
    assert any(d["field"] == "confirmed" for d in not_bool.json()["details"])


def test_action_type_mismatch_is_400(tmp_path):
    client = _client(tmp_path)
    cid = client.post("/command", json={"text": "create customer Jane"}).json()["conversationId"]
    client.post("/command", json={"text": "skip", "conversationId": cid})
    client.post("/command", json={"text": "skip", "conversationId": cid})
    resp = client.post(
        "/command/confirm",
        json={"conversationId": cid, "confirmed": True, "actionType": "delete_customer"},
    )
    assert resp.status_code == 400
    assert resp.json()["details"][0]["field"] == "actionType"


def test_not_found_is_rendered_inline(tmp_path):
    client = _client(tmp_path)
    resp = client.post("/command", json={"text": "delete customer c404"})
    assert resp.status_code == 200
    assert resp.json()["response"] == '❌ Customer "c404" not found.'
    assert resp.json()["conversationId"] is None


def test_unexpected_failure_is_500_with_safe_message(tmp_path):
    class BrokenRepository(JsonCustomerRepository):
        async def list_all_with_order_counts(self):
            raise RuntimeError("connection reset")

    engine = CommandEngine(
        customers=BrokenRepository(path=""),
        audit_logger=AuditLogger(path=str(tmp_path / "audit.log.jsonl")),
    )
    client = TestClient(create_app(engine=engine))
    resp = client.post("/command", json={"text": "list customers"})
    assert resp.status_code == 500
    assert resp.json() == {"response": "I encountered an error. Please try again."}


def test_health_endpoints(tmp_path):
    client = _client(tmp_path)
    client.post("/command", json={"text": "create customer Jane"})
    health = client.get("/command/health")
    assert health.status_code == 200
    body = health.json()
    assert body["status"] == "ok"
    assert body["totalConversations"] == 1
    assert body["activeConversations"][0]["customerName"] == "Jane"

    service = client.get("/health")
    assert service.status_code == 200
    assert service.json()["ok"] is True
    assert "X-Process-Time-Ms" in service.headers


def test_lifespan_starts_without_reaper_when_disabled(tmp_path):
    app = create_app(
        engine=CommandEngine(
            customers=JsonCustomerRepository(path=""),
            audit_logger=AuditLogger(path=str(tmp_path / "audit.log.jsonl")),
        )
    )
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert app.state.reaper.running is False
