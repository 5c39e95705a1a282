from typing import Dict


def _create_task(client, headers, task_name: str, progress: str = "Not Started") -> Dict:
    """Helper: create a task and return response JSON."""
    r = client.post(
        "/tasks",
        json={"taskName": task_name, "dueDate": "2025-06-01", "progress": progress},
        headers=headers,
    )
    assert r.status_code == 201
    return r.json()


def test_filter_by_progress(client, alice_headers):
    t1 = _create_task(client, alice_headers, "Plan", progress="In Progress")
    _create_task(client, alice_headers, "Ship", progress="Completed")
    t3 = _create_task(client, alice_headers, "Review", progress="In Progress")

    r = client.get("/tasks", params={"progress": "In Progress"}, headers=alice_headers)
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [t1["id"], t3["id"]]


def test_summary_counts_own_tasks(client, alice_headers, bob_headers):
    _create_task(client, alice_headers, "A", progress="Not Started")
    _create_task(client, alice_headers, "B", progress="Completed")
    _create_task(client, alice_headers, "C", progress="Completed")
    _create_task(client, alice_headers, "D", progress="Waiting/In Review")
    _create_task(client, bob_headers, "Bob's", progress="Completed")

    r = client.get("/tasks/summary", headers=alice_headers)
    assert r.status_code == 200
    assert r.json() == {
        "total": 4,
        "completed": 2,
        "byProgress": {"Not Started": 1, "Completed": 2, "Waiting/In Review": 1},
    }


def test_summary_empty(client, bob_headers):
    r = client.get("/tasks/summary", headers=bob_headers)
    assert r.json() == {"total": 0, "completed": 0, "byProgress": {}}


def test_request_id_and_security_headers(client):
    r = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert r.headers["X-Request-ID"] == "abc123"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"

    generated = client.get("/health").headers["X-Request-ID"]
    assert len(generated) == 32


def test_ready_reports_store_sizes(client, alice_headers):
    _create_task(client, alice_headers, "Counted")
    r = client.get("/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ready", "users": 1, "tasks": 1}


def test_metrics_exposed(client):
    client.get("/health")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "http_request" in r.text


def test_api_info(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["tasks"] == "/tasks"


def test_unexpected_error_is_generic_500(app, monkeypatch):
    from fastapi.testclient import TestClient

    def boom(user_id):
        raise RuntimeError("secret internal detail")

    monkeypatch.setattr(app.state.task_service, "summary", boom)
    with TestClient(app, raise_server_exceptions=False) as c:
        token = c.post(
            "/auth/register",
            json={"username": "carol", "password": "secret1", "email": "c@x.com", "fullName": "Carol"},
        ).json()["token"]
        r = c.get("/tasks/summary", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 500
    assert r.json()["error"] == "Internal server error"
    assert "secret internal detail" not in r.text


def test_empty_progress_param_means_no_filter(client, alice_headers):
    t1 = _create_task(client, alice_headers, "Plan", progress="In Progress")
    t2 = _create_task(client, alice_headers, "Ship", progress="Completed")

    r = client.get("/tasks?progress=", headers=alice_headers)
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [t1["id"], t2["id"]]


def test_app_serves_registrations_after_restart(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        assert c.get("/health").status_code == 200

    # Second lifespan on the same app: the hashing pool must be usable again
    with TestClient(app) as c:
        r = c.post(
            "/auth/register",
            json={"username": "dave", "password": "secret1", "email": "d@x.com", "fullName": "Dave D"},
        )
        assert r.status_code == 201, r.text
        r = c.post("/auth/login", json={"username": "dave", "password": "secret1"})
        assert r.status_code == 200


def test_malformed_json_without_token_is_rejected_before_any_write(client):
    r = client.post("/tasks", content="{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"
    assert client.get("/ready").json()["tasks"] == 0
