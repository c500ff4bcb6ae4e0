"""Tests for the /api/chat HTTP endpoint."""

import httpx
from fastapi.testclient import TestClient

from src.server import CORS_HEADERS, create_app
from src.services.gateway import GatewayConfig, ProxyGateway

COMPLETION = {"choices": [{"message": {"role": "assistant", "content": "Hi there"}}]}
PAYLOAD = {"model": "gpt-4", "messages": [{"role": "user", "content": "Hello"}]}


def make_client(handler, api_key: str | None = "sk-test") -> TestClient:
    config = GatewayConfig(api_key=api_key, base_url="https://upstream.test")
    gateway = ProxyGateway(config, transport=httpx.MockTransport(handler))
    return TestClient(create_app(gateway=gateway))


def assert_cors(response) -> None:
    for name, value in CORS_HEADERS.items():
        assert response.headers[name] == value


def test_post_returns_upstream_body():
    client = make_client(lambda request: httpx.Response(200, json=COMPLETION))

    response = client.post("/api/chat", json=PAYLOAD)

    assert response.status_code == 200
    assert response.json() == COMPLETION
    assert response.headers["X-Request-Id"]
    assert_cors(response)


def test_non_post_is_method_not_allowed():
    calls = []
    client = make_client(lambda request: calls.append(request) or httpx.Response(200, json={}))

    response = client.get("/api/chat")

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}
    assert_cors(response)
    assert calls == []


def test_options_gets_method_not_allowed_body():
    calls = []
    client = make_client(lambda request: calls.append(request) or httpx.Response(200, json={}))

    response = client.options("/api/chat")

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}
    assert_cors(response)
    assert calls == []


def test_every_non_post_method_gets_json_405():
    client = make_client(lambda request: httpx.Response(200, json={}))

    for method in ("PUT", "PATCH", "DELETE"):
        response = client.request(method, "/api/chat")
        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}
        assert_cors(response)

    head = client.head("/api/chat")
    assert head.status_code == 405
    assert head.headers["content-type"] == "application/json"
    assert_cors(head)


def test_missing_model_is_bad_request():
    client = make_client(lambda request: httpx.Response(200, json=COMPLETION))

    response = client.post("/api/chat", json={"messages": PAYLOAD["messages"]})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request format"
    assert body["requestId"]
    assert body["kind"] == "InvalidRequest"
    assert_cors(response)


def test_non_json_body_is_bad_request():
    client = make_client(lambda request: httpx.Response(200, json=COMPLETION))

    response = client.post(
        "/api/chat", content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


def test_upstream_rejection_is_mapped_with_request_id():
    client = make_client(
        lambda request: httpx.Response(401, json={"error": {"message": "Incorrect API key"}})
    )

    response = client.post("/api/chat", json=PAYLOAD)

    assert response.status_code == 401
    body = response.json()
    assert body["error"] == "Incorrect API key"
    assert body["kind"] == "UpstreamRejected"
    assert body["requestId"] == response.headers["X-Request-Id"]
    assert_cors(response)


def test_missing_credential_is_server_error():
    client = make_client(lambda request: httpx.Response(200, json=COMPLETION), api_key=None)

    response = client.post("/api/chat", json=PAYLOAD)

    assert response.status_code == 500
    assert response.json()["kind"] == "MissingCredential"


def test_unknown_route_still_carries_cors_headers():
    client = make_client(lambda request: httpx.Response(200, json={}))

    response = client.get("/nope")

    assert response.status_code == 404
    assert_cors(response)
