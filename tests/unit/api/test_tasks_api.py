"""Tests for the Task endpoints."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from taskboard.api.app import create_app
from taskboard.config.settings import Settings
from taskboard.core.engine import TaskboardEngine


@pytest.fixture
def client(settings: Settings, engine: TaskboardEngine) -> Iterator[TestClient]:
    """Test client with the app lifespan running."""
    with TestClient(create_app(settings, engine=engine)) as c:
        yield c


TASK = {"action": "ship", "deadline": "2024-01-10", "user": "alice"}


class TestCreateTask:
    def test_create(self, client: TestClient) -> None:
        response = client.post("/v1/tasks", json=TASK)

        assert response.status_code == 201
        data = response.json()
        assert data["id"] is not None
        assert data["action"] == "ship"
        assert data["deadline"] == "2024-01-10"
        assert data["stage"] is None
        assert response.headers["Location"] == f"/v1/tasks/{data['id']}"
        assert response.headers["X-Taskboard-Alert"] == "taskboard.task.created"
        assert response.headers["X-Taskboard-Params"] == str(data["id"])

    def test_create_with_id_rejected(self, client: TestClient) -> None:
        response = client.post("/v1/tasks", json={**TASK, "id": 5})

        assert response.status_code == 400
        assert response.json() == {
            "title": "A new task cannot already have an ID",
            "entity_name": "task",
            "error_key": "idexists",
        }
        assert response.headers["X-Taskboard-Error"] == "error.idexists"
        assert client.get("/v1/tasks").json()["total_elements"] == 0

    def test_invalid_body(self, client: TestClient) -> None:
        response = client.post("/v1/tasks", json={"deadline": "not-a-date"})
        assert response.status_code == 400
        assert response.json()["error_key"] == "validation"


class TestUpdateTask:
    def test_update(self, client: TestClient) -> None:
        created = client.post("/v1/tasks", json=TASK).json()

        response = client.put("/v1/tasks", json={**created, "stage": {"id": 7}})

        assert response.status_code == 200
        assert response.json()["stage"] == {"id": 7}
        assert response.headers["X-Taskboard-Alert"] == "taskboard.task.updated"

    def test_update_replaces_all_fields(self, client: TestClient) -> None:
        created = client.post("/v1/tasks", json=TASK).json()

        client.put("/v1/tasks", json={"id": created["id"], "action": "deploy"})

        fetched = client.get(f"/v1/tasks/{created['id']}").json()
        assert fetched["action"] == "deploy"
        assert fetched["user"] is None

    def test_update_without_id_creates(self, client: TestClient) -> None:
        response = client.put("/v1/tasks", json=TASK)

        assert response.status_code == 201
        assert response.json()["id"] is not None
        assert response.headers["X-Taskboard-Alert"] == "taskboard.task.created"

    def test_update_without_id_matches_create(self, client: TestClient) -> None:
        created = client.post("/v1/tasks", json=TASK).json()
        updated = client.put("/v1/tasks", json=TASK).json()

        assert updated["id"] != created["id"]
        assert {**updated, "id": None} == {**created, "id": None}
        fetched = client.get(f"/v1/tasks/{updated['id']}").json()
        assert {**fetched, "id": None} == {**created, "id": None}

    def test_update_without_id_rejected_by_policy(self, task_store, task_index) -> None:
        settings = Settings(_env_file=None, sync={"update_without_id": "reject"})  # type: ignore[call-arg]
        engine = TaskboardEngine(settings, stores={"task": task_store}, indexes={"task": task_index})
        with TestClient(create_app(settings, engine=engine)) as client:
            response = client.put("/v1/tasks", json=TASK)

        assert response.status_code == 400
        assert response.json()["error_key"] == "idnull"


class TestGetAndDeleteTask:
    def test_get(self, client: TestClient) -> None:
        created = client.post("/v1/tasks", json=TASK).json()
        response = client.get(f"/v1/tasks/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    def test_get_missing(self, client: TestClient) -> None:
        response = client.get("/v1/tasks/999")
        assert response.status_code == 404
        assert response.json()["entity_id"] == 999

    def test_delete(self, client: TestClient) -> None:
        created = client.post("/v1/tasks", json=TASK).json()

        response = client.delete(f"/v1/tasks/{created['id']}")

        assert response.status_code == 200
        assert response.headers["X-Taskboard-Alert"] == "taskboard.task.deleted"
        assert client.get(f"/v1/tasks/{created['id']}").status_code == 404
        assert client.delete(f"/v1/tasks/{created['id']}").status_code == 200

    def test_writes_succeed_when_index_is_down(self, client: TestClient, task_index) -> None:
        task_index.fail_writes = True

        created = client.post("/v1/tasks", json=TASK)

        assert created.status_code == 201
        assert client.get(f"/v1/tasks/{created.json()['id']}").status_code == 200
        backends = client.get("/v1/health/backends").json()
        assert backends["index_failures"] == {"task.create": 1}


class TestListTasks:
    def test_pagination_headers(self, client: TestClient) -> None:
        for i in range(5):
            client.post("/v1/tasks", json={"action": f"t{i}"})

        response = client.get("/v1/tasks", params={"page": 1, "size": 2})

        assert response.status_code == 200
        data = response.json()
        assert [t["action"] for t in data["content"]] == ["t2", "t3"]
        assert data["total_pages"] == 3
        assert response.headers["X-Total-Count"] == "5"
        link = response.headers["Link"]
        assert 'page=2&size=2>; rel="next"' in link
        assert 'page=0&size=2>; rel="prev"' in link
        assert 'rel="last"' in link and 'rel="first"' in link

    def test_default_page_size(self, client: TestClient, settings: Settings) -> None:
        data = client.get("/v1/tasks").json()
        assert data["size"] == settings.pagination.default_page_size

    @pytest.mark.parametrize("params", [{"page": -1}, {"size": 0}, {"page": "x"}])
    def test_invalid_paging(self, client: TestClient, params: dict) -> None:
        assert client.get("/v1/tasks", params=params).status_code == 400


class TestSearchTasks:
    def test_search(self, client: TestClient) -> None:
        created = client.post("/v1/tasks", json=TASK).json()
        client.post("/v1/tasks", json={"action": "write docs", "user": "bob"})

        response = client.get("/v1/_search/tasks", params={"query": "alice"})

        assert response.status_code == 200
        data = response.json()
        assert [t["id"] for t in data["content"]] == [created["id"]]
        assert data["query"] == "alice"
        assert response.headers["X-Total-Count"] == "1"
        assert "query=alice" in response.headers["Link"]

    def test_missing_query(self, client: TestClient) -> None:
        response = client.get("/v1/_search/tasks")
        assert response.status_code == 400
        assert response.json()["error_key"] == "querymissing"

    def test_unparsable_query(self, client: TestClient) -> None:
        response = client.get("/v1/_search/tasks", params={"query": "ship AND"})
        assert response.status_code == 400
        assert response.json()["error_key"] == "queryinvalid"

    def test_index_outage(self, client: TestClient, task_index) -> None:
        task_index.fail_search = True
        response = client.get("/v1/_search/tasks", params={"query": "ship"})
        assert response.status_code == 503
