from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from backend.api import app, get_factory
from reqsmith.factory import RequestFactory


@pytest.fixture
def client() -> TestClient:
    app.dependency_overrides[get_factory] = lambda: RequestFactory()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_parse_endpoint_rebuilds_request(client: TestClient) -> None:
    raw = "POST /x HTTP/1.1\r\nHost: example.com\r\nContent-Length: 2\r\n\r\nhi"
    response = client.post("/requests/parse", json={"raw": raw})
    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "entity_enclosing"
    assert data["url"] == "http://example.com/x"
    assert data["body"] == "hi"
    assert ["Content-Length", "2"] in data["headers"]
    assert all(name.lower() != "expect" for name, _ in data["headers"])


def test_parse_endpoint_with_target(client: TestClient) -> None:
    raw = "GET /users HTTP/1.1\r\nHost: prod.example.com\r\n\r\n"
    response = client.post("/requests/parse", json={"raw": raw, "target": "https://staging.example.com"})
    assert response.status_code == 200
    assert response.json()["url"] == "https://staging.example.com/users"


def test_parse_endpoint_rejects_garbage(client: TestClient) -> None:
    response = client.post("/requests/parse", json={"raw": "garbage"})
    assert response.status_code == 422
    assert response.json()["detail"] == "Unparseable HTTP request message"


def test_create_endpoint_with_fields(client: TestClient) -> None:
    response = client.post("/requests", json={
        "method": "post",
        "url": "http://example.com/upload",
        "fields": {"name": "me", "tags": ["a", "b"], "avatar": "@/tmp/me.png"},
    })
    assert response.status_code == 200
    data = response.json()
    assert data["method"] == "POST"
    assert data["fields"] == [["name", "me"], ["tags", "a"], ["tags", "b"]]
    assert data["files"] == {"avatar": "/tmp/me.png"}


def test_create_endpoint_get_body_is_response_sink(client: TestClient) -> None:
    response = client.post("/requests", json={
        "method": "GET", "url": "http://example.com/", "body": "out.bin", "protocol_version": "1.0",
    })
    data = response.json()
    assert data["kind"] == "no_body"
    assert data["response_body"] == "out.bin"
    assert data["protocol_version"] == "1.0"


def test_create_endpoint_rejects_body_and_fields(client: TestClient) -> None:
    response = client.post("/requests", json={
        "method": "POST", "url": "http://example.com/", "body": "x", "fields": {"a": "1"},
    })
    assert response.status_code == 422


def test_create_endpoint_reports_invalid_parts(client: TestClient) -> None:
    response = client.post("/requests", json={"method": "POST", "url": ""})
    assert response.status_code == 422


@pytest.mark.parametrize("method,kind,has_body", [
    ("get", "no_body", False),
    ("OPTIONS", "no_body", False),
    ("patch", "entity_enclosing", True),
])
def test_methods_endpoint(client: TestClient, method: str, kind: str, has_body: bool) -> None:
    response = client.get(f"/methods/{method}")
    assert response.json() == {"method": method.upper(), "kind": kind, "has_body": has_body}
