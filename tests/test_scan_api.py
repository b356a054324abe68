"""
Tests for the FastAPI surface — /scan, /rules and /health.
"""

from fastapi.testclient import TestClient

from hyplint.api.dependencies import get_analysis_worker
from hyplint.cache.file_cache import FileCache
from hyplint.config import VERSION
from hyplint.core.registry import build_default_registry
from hyplint.main import app
from hyplint.workers.analysis_worker import AnalysisWorker

_worker = AnalysisWorker(registry=build_default_registry(), cache=FileCache())
app.dependency_overrides[get_analysis_worker] = lambda: _worker

client = TestClient(app)


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION
    assert data["checkers"] == 6


def test_rules_catalog():
    response = client.get("/rules")
    assert response.status_code == 200
    rules = {r["rule_id"]: r for r in response.json()}
    assert set(rules) == {"E1001", "E1002", "E1101", "E1103", "E1106", "E1506"}
    assert rules["E1101"]["default_parameters"] == {"max_complexity": 10}
    assert rules["E1506"]["severity"] == "high"


def test_scan_empty_files():
    response = client.post("/scan", json={"files": []})
    assert response.status_code == 400


def test_scan_clean_code(clean_rust_code):
    response = client.post("/scan", json={
        "files": [{"path": "clean.rs", "content": clean_rust_code}]
    })
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "scan_complete"
    report = data["report"]
    assert report["diagnostics"] == []
    assert report["highest_severity"] is None
    assert report["files_analyzed"] == 1


def test_scan_lock_cycle(bank_transfer_code, bank_refund_code):
    response = client.post("/scan", json={
        "files": [
            {"path": "transfer.rs", "content": bank_transfer_code},
            {"path": "refund.rs", "content": bank_refund_code},
        ],
        "include": ["E15"],
    })
    assert response.status_code == 200
    report = response.json()["report"]
    assert [d["rule_id"] for d in report["diagnostics"]] == ["E1506"]
    cycle = report["diagnostics"][0]
    assert cycle["severity"] == "high"
    assert len(cycle["secondary_locations"]) == 2
    assert report["highest_severity"] == "high"


def test_scan_with_overrides(branchy):
    response = client.post("/scan", json={
        "files": [{"path": "busy.rs", "content": branchy("busy", 3)}],
        "overrides": {"E1101": {"parameters": {"max_complexity": 2}}},
    })
    assert response.status_code == 200
    diagnostics = response.json()["report"]["diagnostics"]
    assert [d["rule_id"] for d in diagnostics] == ["E1101"]


def test_scan_rejects_bad_configuration(clean_rust_code):
    response = client.post("/scan", json={
        "files": [{"path": "clean.rs", "content": clean_rust_code}],
        "overrides": {"E1101": {"parameters": {"max_complexity": "ten"}}},
    })
    assert response.status_code == 400
    assert "E1101" in response.json()["detail"]


def test_scan_reports_parse_errors(broken_rust_code, clean_rust_code):
    response = client.post("/scan", json={
        "files": [
            {"path": "broken.rs", "content": broken_rust_code},
            {"path": "clean.rs", "content": clean_rust_code},
        ]
    })
    assert response.status_code == 200
    report = response.json()["report"]
    assert report["files_unparsable"] == 1
    assert report["diagnostics"][0]["kind"] == "parse_error"
