"""HTTP surface tests using FastAPI's TestClient.

The app is built with the in-memory storage backend unless a test opts into
``sql`` with a temporary SQLite file.
"""

import pytest
from fastapi.testclient import TestClient

from helpers.drafts import SCHEMA_DIR, VALID_BASELINE, VALID_DAILY
from trial_server.app import create_app
from trial_server.config import ServerSettings, load_settings

API = "/api/v1"


@pytest.fixture
def client():
    app = create_app(ServerSettings(storage="memory", schema_dir=str(SCHEMA_DIR)))
    with TestClient(app) as c:
        yield c


def _open(client, participant_id=None):
    resp = client.post(f"{API}/sessions", json={"participant_id": participant_id})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _answer_all(client, pid, answers):
    body = None
    for qid, value in answers.items():
        resp = client.put(f"{API}/sessions/{pid}/answers/{qid}", json={"value": value})
        assert resp.status_code == 200, f"{qid}: {resp.text}"
        body = resp.json()
    return body


def _enrol(client):
    step = _open(client)
    pid = step["participant_id"]
    _answer_all(client, pid, VALID_BASELINE)
    resp = client.post(f"{API}/sessions/{pid}/baseline")
    assert resp.json()["type"] == "dashboard"
    return pid


# =====================================================================
# Settings
# =====================================================================


class TestSettings:

    def test_env_settings(self, monkeypatch):
        monkeypatch.setenv("SERVER_PORT", "9000")
        monkeypatch.setenv("SERVER_STORAGE", "MEMORY")
        monkeypatch.setenv("SERVER_CORS_ORIGINS", "http://a, http://b")
        settings = load_settings()
        assert settings.port == 9000
        assert settings.storage == "memory"
        assert settings.cors_origins == ["http://a", "http://b"]

    def test_idle_timeout_setting(self, monkeypatch):
        monkeypatch.delenv("SERVER_SESSION_IDLE_TIMEOUT", raising=False)
        assert load_settings().session_idle_timeout == 3600.0
        monkeypatch.setenv("SERVER_SESSION_IDLE_TIMEOUT", "0")
        assert load_settings().session_idle_timeout is None

    def test_unknown_storage_rejected(self):
        with pytest.raises(ValueError):
            ServerSettings(storage="redis")


# =====================================================================
# Sessions
# =====================================================================


class TestSessions:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"

    def test_open_new_session(self, client):
        step = _open(client)
        assert step["type"] == "form"
        assert step["form"] == "baseline"
        assert step["participant_id"].startswith("MB2W_")
        assert [q["qid"] for q in step["questions"]][0] == "age_range"

    def test_open_twice_conflicts(self, client):
        _open(client, "MB2W_1_dup")
        resp = client.post(f"{API}/sessions", json={"participant_id": "MB2W_1_dup"})
        assert resp.status_code == 409

    def test_unknown_participant_404(self, client):
        assert client.get(f"{API}/sessions/nobody").status_code == 404

    def test_unknown_question_404(self, client):
        pid = _open(client)["participant_id"]
        resp = client.put(f"{API}/sessions/{pid}/answers/nope", json={"value": "x"})
        assert resp.status_code == 404

    def test_wrong_phase_400(self, client):
        pid = _open(client)["participant_id"]
        assert client.post(f"{API}/sessions/{pid}/entries").status_code == 400

    def test_validation_error_is_a_notice(self, client):
        pid = _open(client)["participant_id"]
        resp = client.post(f"{API}/sessions/{pid}/baseline")
        assert resp.status_code == 200
        body = resp.json()
        assert body["type"] == "form"
        assert body["notice"]["kind"] == "error"
        assert body["notice"]["qid"] == "age_range"

    def test_close_and_reopen_resumes(self, client):
        pid = _enrol(client)
        assert client.delete(f"{API}/sessions/{pid}").status_code == 204
        step = _open(client, pid)
        assert step["type"] == "dashboard"


# =====================================================================
# Daily entry workflow
# =====================================================================


class TestEntries:

    def test_entry_round_trip(self, client):
        pid = _enrol(client)
        form = client.post(f"{API}/sessions/{pid}/entries/new").json()
        assert form["type"] == "form" and form["day_number"] == 1

        step = _answer_all(client, pid, {"scented_products": "Yes"})
        assert "scent_type" in [q["qid"] for q in step["questions"]]

        _answer_all(client, pid, VALID_DAILY)
        dash = client.post(f"{API}/sessions/{pid}/entries").json()
        assert dash["type"] == "dashboard"
        assert dash["entry_count"] == 1
        assert dash["history"][0]["protected"] is True

    def test_cancel(self, client):
        pid = _enrol(client)
        client.post(f"{API}/sessions/{pid}/entries/new")
        dash = client.post(f"{API}/sessions/{pid}/entries/cancel").json()
        assert dash["type"] == "dashboard"
        assert dash["entry_count"] == 0

    def test_questions_endpoint(self, client):
        pid = _enrol(client)
        assert client.get(f"{API}/sessions/{pid}/questions").json() == []
        client.post(f"{API}/sessions/{pid}/entries/new")
        qids = [q["qid"] for q in client.get(f"{API}/sessions/{pid}/questions").json()]
        assert "first_bite_time" not in qids

    def test_amend_baseline(self, client):
        pid = _enrol(client)
        resp = client.put(
            f"{API}/sessions/{pid}/baseline",
            json={"answers": {**VALID_BASELINE, "sex": "Male"}},
        )
        assert resp.json()["notice"]["kind"] == "success"

    def test_dismiss_notice(self, client):
        pid = _enrol(client)
        assert client.delete(f"{API}/sessions/{pid}/notice").json()["notice"] is None


# =====================================================================
# Schema reference
# =====================================================================


class TestSchemaReference:

    def test_summary(self, client):
        body = client.get(f"{API}/schema").json()
        assert body["max_entries"] == 14
        assert len(body["phases"]["daily"]) == 26

    def test_daily_payloads(self, client):
        payloads = client.get(f"{API}/schema/daily").json()
        by_qid = {p["qid"]: p for p in payloads}
        assert by_qid["amount_applied"]["constraints"]["min"] == 0.5
        assert by_qid["temperature_humidity"]["fields"][1] == {"label": "Humidity", "unit": "%"}
        assert by_qid["scent_type"]["allows_free_text"] is True

    def test_unknown_phase_404(self, client):
        assert client.get(f"{API}/schema/weekly").status_code == 404


# =====================================================================
# SQL backend
# =====================================================================


def test_sql_backend_persists(monkeypatch, tmp_path):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("TRIAL_DB_PATH", str(tmp_path / "server.db"))
    settings = ServerSettings(storage="sql", schema_dir=str(SCHEMA_DIR))

    with TestClient(create_app(settings)) as c:
        pid = _enrol(c)
        assert c.get("/health").json()["status"] == "ok"

    # Fresh app, same database file
    with TestClient(create_app(settings)) as c:
        step = _open(c, pid)
        assert step["type"] == "dashboard"
