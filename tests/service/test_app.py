"""Tests for the FastAPI service mode."""

from __future__ import annotations

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from stackprobe import __version__
from stackprobe.errors import ScanError
from stackprobe.identity import assign_ids
from stackprobe.models import ScanMetadata
from stackprobe.payload import ComponentNode, Payload
from stackprobe.service import create_app


class _StubScanner:
    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, path: str, *, exclude=(), root_id=None) -> ComponentNode:
        self.calls.append({"path": path, "exclude": list(exclude), "root_id": root_id})
        if path == "/missing":
            raise FileNotFoundError(path)
        if path == "/broken":
            raise ScanError("Cannot list scan root /broken")
        root = Payload("main", ["/"])
        root.add_primary_tech("python", "matched extension: .py")
        root.add_language("Python", 2)
        root.metadata = ScanMetadata(scan_path=path)
        return assign_ids(root, root_id or "generated-id")


@pytest.fixture
def scanner() -> _StubScanner:
    return _StubScanner()


@pytest.fixture
def client(scanner: _StubScanner) -> TestClient:
    return TestClient(create_app(lambda: scanner))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__}


def test_scan_endpoint_returns_full_tree(client: TestClient, scanner: _StubScanner) -> None:
    response = client.post("/scan", json={"path": "/repo", "exclude": ["dist"], "root_id": "abc"})

    assert response.status_code == 200
    data = response.json()
    assert data["format"] == "full"
    assert data["result"]["id"] == "abc"
    assert data["result"]["tech"] == ["python"]
    assert scanner.calls == [{"path": "/repo", "exclude": ["dist"], "root_id": "abc"}]


def test_scan_endpoint_aggregates(client: TestClient) -> None:
    response = client.post("/scan", json={"path": "/repo", "aggregate": True, "fields": ["languages"]})

    assert response.status_code == 200
    data = response.json()
    assert data["format"] == "aggregated"
    assert data["result"]["languages"] == {"Python": 2}
    assert data["result"]["metadata"]["format"] == "aggregated"
    assert "techs" not in data["result"]


def test_scan_endpoint_rejects_unknown_fields(client: TestClient, scanner: _StubScanner) -> None:
    response = client.post("/scan", json={"path": "/repo", "aggregate": True, "fields": ["colour"]})

    assert response.status_code == 400
    assert "colour" in response.json()["detail"]
    assert scanner.calls == []


def test_scan_endpoint_maps_missing_path_to_404(client: TestClient) -> None:
    response = client.post("/scan", json={"path": "/missing"})
    assert response.status_code == 404


def test_scan_endpoint_maps_scan_errors_to_400(client: TestClient) -> None:
    response = client.post("/scan", json={"path": "/broken"})
    assert response.status_code == 400
    assert "Cannot list scan root" in response.json()["detail"]


def test_default_scanner_maps_missing_root_to_404(tmp_path) -> None:
    client = TestClient(create_app())

    response = client.post("/scan", json={"path": str(tmp_path / "missing")})

    assert response.status_code == 404
    assert "does not exist" in response.json()["detail"]


def test_default_scanner_maps_file_root_to_400(tmp_path) -> None:
    target = tmp_path / "notes.txt"
    target.write_text("hello", encoding="utf-8")
    client = TestClient(create_app())

    response = client.post("/scan", json={"path": str(target)})

    assert response.status_code == 400
    assert "not a directory" in response.json()["detail"]
