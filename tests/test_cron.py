import pytest


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_cleanup(repository, mailer):
        recorded.append(repository)
        return {"deleted": 3}

    monkeypatch.setattr("wireline.api.run_cleanup", fake_cleanup)
    return recorded


def test_wrong_secret_is_unauthorized(client, calls):
    resp = client.get("/api/cron/cleanup", headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401
    assert resp.json() == {"message": "Unauthorized"}
    assert calls == []


def test_missing_header_is_unauthorized(client, calls):
    resp = client.post("/api/cron/cleanup")
    assert resp.status_code == 401
    assert calls == []


def test_secret_must_match_exactly(client, calls):
    resp = client.get("/api/cron/cleanup", headers={"Authorization": "cron-secret"})
    assert resp.status_code == 401
    assert calls == []


@pytest.mark.parametrize("method", ["get", "post"])
def test_correct_secret_relays_summary(client, calls, method):
    resp = getattr(client, method)(
        "/api/cron/cleanup", headers={"Authorization": "Bearer cron-secret"}
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Cleanup completed successfully",
        "deleted": 3,
    }
    assert len(calls) == 1


def test_cleanup_failure_is_reported(client, monkeypatch):
    def failing_cleanup(repository, mailer):
        raise RuntimeError("store unreachable")

    monkeypatch.setattr("wireline.api.run_cleanup", failing_cleanup)
    resp = client.get("/api/cron/cleanup", headers={"Authorization": "Bearer cron-secret"})
    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "message": "Cleanup failed",
        "error": "store unreachable",
    }


def test_real_cleanup_runs_with_correct_secret(client):
    resp = client.post("/api/cron/cleanup", headers={"Authorization": "Bearer cron-secret"})
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Cleanup completed successfully",
        "deleted_users": 0,
        "reminders_sent": 0,
        "errors": [],
    }
