import pytest
from fastapi.testclient import TestClient

from app.ai_status import get_ai_status, reset_status_cache
from app.main import app

from conftest import write_tree

VULNERABLE_JS = "function show(el, userInput) {\n  el.innerHTML = userInput;\n}\n"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("TOGETHER_API_KEY", "")
    monkeypatch.setenv("EXTCHECK_CONFIG", "")
    reset_status_cache()
    return TestClient(app)


def test_health_without_api_key(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["ai"]["available"] is False
    assert body["ai"]["api_key_set"] is False


def test_ai_status_without_ping_does_not_call_api(monkeypatch):
    monkeypatch.setenv("TOGETHER_API_KEY", "sk-test-0123456789")
    status = get_ai_status()
    assert status["available"] is True
    assert status["reason"] == "API key configured (not verified)"

    monkeypatch.setenv("TOGETHER_API_KEY", "your_api_key_here")
    assert get_ai_status()["available"] is False


def test_ai_ping_failure_is_cached(monkeypatch):
    calls = []

    class RejectingClient:
        def __init__(self, **kwargs):
            self.chat = self
            self.completions = self

        def create(self, **kwargs):
            calls.append(kwargs["model"])
            raise RuntimeError("Error code: 401 - Unauthorized")

    monkeypatch.setenv("TOGETHER_API_KEY", "sk-test-0123456789")
    monkeypatch.setattr("app.ai_status.OpenAI", RejectingClient)
    reset_status_cache()

    first = get_ai_status(verify_api=True)
    second = get_ai_status(verify_api=True)
    assert first["available"] is False
    assert first["reason"] == "TOGETHER_API_KEY is invalid or expired"
    assert second == first
    assert len(calls) == 1
    reset_status_cache()


def test_scan_reports_issues(client, make_extension):
    root = make_extension({"src/view.js": VULNERABLE_JS})
    resp = client.post("/scan", json={"extensionPath": str(root)})
    assert resp.status_code == 200
    body = resp.json()
    sinks = [i for i in body["issues"] if i["type"] == "unsafe-innerHTML"]
    assert len(sinks) == 1
    assert sinks[0]["file"] == "src/view.js"
    assert sinks[0]["line"] == 2
    assert sinks[0]["severity"] == "ERROR"
    assert body["exit_code"] == 1
    assert body["statistics"]["byLevel"]["ERROR"] >= 1


def test_scan_applies_config_overrides(client, make_extension):
    root = make_extension({"src/view.js": VULNERABLE_JS})
    body = client.post(
        "/scan",
        json={"extensionPath": str(root), "config": {"warningLevels": {"unsafe-innerHTML": "ignore"}}},
    ).json()
    assert [i for i in body["issues"] if i["type"] == "unsafe-innerHTML"] == []


def test_scan_rejects_relative_path(client):
    resp = client.post("/scan", json={"extensionPath": "relative/ext"})
    assert resp.status_code == 400


def test_scan_missing_directory(client, tmp_path):
    resp = client.post("/scan", json={"extensionPath": str(tmp_path / "missing")})
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "PATH_NOT_FOUND"


def test_scan_invalid_config(client, extension):
    resp = client.post("/scan", json={"extensionPath": str(extension), "config": {"timeout": -1}})
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["code"] == "CONFIG_ERROR"
    assert detail["errors"]


def test_run_and_incremental_cache(client, extension):
    payload = {"extensionPath": str(extension), "incremental": True}
    first = client.post("/run", json=payload)
    assert first.status_code == 200
    body = first.json()
    assert body["exit_code"] == 0
    assert body["result"]["mode"] == "full"
    assert body["result"]["summary"]["failed"] == 0

    second = client.post("/run", json=payload).json()
    assert second["result"]["mode"] == "none"
    assert second["result"]["suites"] == []

    stats = client.get("/cache/stats", params={"extensionPath": str(extension)}).json()["stats"]
    assert stats["exists"] is True
    assert stats["lastTestMode"] == "full"

    resp = client.delete("/cache", params={"extensionPath": str(extension)})
    assert resp.json() == {"cleared": True}
    third = client.post("/run", json=payload).json()
    assert third["result"]["mode"] == "full"


def test_run_selected_suites(client, make_extension):
    root = make_extension({"src/view.js": VULNERABLE_JS})
    body = client.post("/run", json={"extensionPath": str(root), "suites": ["security"]}).json()
    assert [s["category"] for s in body["result"]["suites"]] == ["security"]
    assert body["exit_code"] == 1


def test_run_unknown_suite(client, extension):
    resp = client.post("/run", json={"extensionPath": str(extension), "suites": ["nope"]})
    assert resp.status_code == 400


def test_run_uses_config_file(client, extension):
    write_tree(extension, {".extension-checker.json": {"skipTests": ["Valid JSON format"]}})
    body = client.post("/run", json={"extensionPath": str(extension), "suites": ["manifest"]}).json()
    cases = {c["name"]: c for c in body["result"]["suites"][0]["tests"]}
    assert cases["Valid JSON format"]["status"] == "skipped"


def test_suggest_without_api_key(client, make_extension):
    root = make_extension({"src/view.js": VULNERABLE_JS})
    resp = client.post("/suggest", json={"extensionPath": str(root)})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ai_fix_suggestions"] is None
    assert any(i["type"] == "unsafe-innerHTML" for i in body["issues"])
