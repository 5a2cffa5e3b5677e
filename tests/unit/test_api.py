from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from discovery_orchestrator.api.main import create_app
from discovery_orchestrator.config.settings import Settings
from discovery_orchestrator.storage.memory import InMemoryDocumentStore, InMemoryTaskStorage
from tests.factories import DISCOVERY_REQUESTS, MATTER_ID


@pytest.fixture
def client(document_store: InMemoryDocumentStore) -> TestClient:
    app = create_app(
        storage=InMemoryTaskStorage(),
        documents=document_store,
        settings_override=Settings(classifier_mode="rule-based"),
    )
    return TestClient(app)


def _create_review(client: TestClient, **overrides) -> dict:
    payload = {
        "agent_type": "discovery",
        "matter_id": MATTER_ID,
        "query": "Review Q3 collection for production",
        "parameters": {"discovery_requests": DISCOVERY_REQUESTS},
    }
    payload.update(overrides)
    response = client.post("/tasks", json=payload)
    assert response.status_code == 200
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_agents_lists_discovery_and_classifier_mode(client: TestClient) -> None:
    response = client.get("/agents")

    assert response.status_code == 200
    payload = response.json()
    assert [agent["agent_type"] for agent in payload["agents"]] == ["discovery"]
    assert payload["classifier_mode"] == {
        "requested": "rule-based",
        "effective": "rule-based",
        "fallback_reason": None,
    }


def test_task_lifecycle(client: TestClient) -> None:
    created = _create_review(client)
    assert created["status"] == "pending"
    assert created["progress"] == 0
    assert created["name"] == "Discovery Review: Review Q3 collection for production"

    execute = client.post(f"/tasks/{created['task_id']}/execute")
    assert execute.status_code == 202
    assert execute.json()["message"] == "Task execution started"

    fetched = client.get(f"/tasks/{created['task_id']}")
    assert fetched.status_code == 200
    task = fetched.json()
    assert task["status"] == "completed"
    assert task["progress"] == 100
    assert task["output"]["statistics"]["total_documents"] == 4
    assert "## Matter: Acme v. Widget Co" in task["output"]["review_report"]

    executions = client.get(f"/tasks/{created['task_id']}/executions")
    assert executions.status_code == 200
    assert [item["status"] for item in executions.json()] == ["completed"]


def test_execute_rejects_non_pending_task(client: TestClient) -> None:
    created = _create_review(client)
    client.post(f"/tasks/{created['task_id']}/execute")

    again = client.post(f"/tasks/{created['task_id']}/execute")
    assert again.status_code == 409

    cancel = client.post(f"/tasks/{created['task_id']}/cancel")
    assert cancel.status_code == 409
    assert cancel.json()["detail"] == "Task is already completed"


def test_cancel_pending_task(client: TestClient) -> None:
    created = _create_review(client)

    response = client.post(f"/tasks/{created['task_id']}/cancel")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["completed_at"] is not None
    assert client.post(f"/tasks/{created['task_id']}/execute").status_code == 409


def test_execute_without_discovery_requests_fails_task(client: TestClient) -> None:
    created = _create_review(client, parameters={})

    client.post(f"/tasks/{created['task_id']}/execute")

    task = client.get(f"/tasks/{created['task_id']}").json()
    assert task["status"] == "failed"
    assert "discovery requests required" in task["error"]


def test_unknown_task_returns_404(client: TestClient) -> None:
    assert client.get("/tasks/missing").status_code == 404
    assert client.post("/tasks/missing/execute").status_code == 404
    assert client.post("/tasks/missing/cancel").status_code == 404
    assert client.get("/tasks/missing/executions").status_code == 404


def test_unsupported_agent_type_is_rejected(client: TestClient) -> None:
    response = client.post("/tasks", json={"agent_type": "astrology", "query": "x"})
    assert response.status_code == 422


def test_task_listing_filters(client: TestClient) -> None:
    first = _create_review(client)
    second = _create_review(client, matter_id="matter-2")
    client.post(f"/tasks/{first['task_id']}/cancel")

    matter_tasks = client.get(f"/matters/{MATTER_ID}/tasks").json()
    assert [task["task_id"] for task in matter_tasks] == [first["task_id"]]

    pending = client.get("/tasks", params={"status": "pending"}).json()
    assert [task["task_id"] for task in pending] == [second["task_id"]]

    by_matter = client.get("/tasks", params={"matter_id": "matter-2"}).json()
    assert [task["task_id"] for task in by_matter] == [second["task_id"]]
