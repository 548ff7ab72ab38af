import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from apps.spa_server.app.middleware.header_check import HeaderCheckMiddleware
from apps.spa_server.app.security.origin_guard import OriginGuard


@pytest.fixture
def calls():
    return []


@pytest.fixture
def client(calls):
    """
    Tiny app with the guard in front of a route that records every call,
    so we can tell whether a rejected request reached the handler.
    """
    app = FastAPI()
    app.add_middleware(HeaderCheckMiddleware, whitelist=["https://localhost:8001"])

    @app.api_route("/things", methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"])
    async def things():
        calls.append(1)
        return {"ok": True}

    return TestClient(app)


@pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS"])
def test_safe_methods_pass_with_foreign_origin(client, calls, method):
    r = client.request(method, "/things", headers={"Origin": "https://evil.com", "Referer": "https://evil.com/x"})
    assert r.status_code == 200
    assert calls == [1]


def test_post_without_origin_or_referer_passes(client, calls):
    r = client.post("/things")
    assert r.status_code == 200
    assert calls == [1]


def test_post_from_whitelisted_origin_passes(client, calls):
    r = client.post("/things", headers={"Origin": "https://localhost:8001/some/path"})
    assert r.status_code == 200
    assert calls == [1]


def test_post_from_foreign_origin_is_403_and_short_circuits(client, calls):
    r = client.post("/things", headers={"Origin": "https://evil.com", "Referer": "https://localhost:8001/"})
    assert r.status_code == 403, r.text
    body = r.json()
    assert body["error"]["code"] == "INVALID_ORIGIN"
    assert "https://evil.com" in body["error"]["message"]
    assert calls == []


def test_delete_with_foreign_referer_is_403(client, calls):
    r = client.delete("/things", headers={"Referer": "https://evil.com/x"})
    assert r.status_code == 403
    body = r.json()
    assert body["error"]["code"] == "INVALID_REFERER"
    assert body["error"]["message"] == "Invalid referer header https://evil.com"
    assert calls == []


def test_put_with_malformed_origin_is_403(client, calls):
    r = client.put("/things", headers={"Origin": "not a url"})
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "INVALID_ORIGIN"
    assert calls == []


def test_rejection_is_logged(client, caplog):
    with caplog.at_level("WARNING", logger="apps.spa_server.app.middleware.header_check"):
        client.patch("/things", headers={"Origin": "https://evil.com"})
    assert any("Invalid origin header https://evil.com" in rec.getMessage() for rec in caplog.records)


def test_middleware_accepts_prebuilt_guard(calls):
    app = FastAPI()
    app.add_middleware(HeaderCheckMiddleware, guard=OriginGuard(["https://app.example"]))

    @app.post("/x")
    async def x():
        calls.append(1)
        return {}

    c = TestClient(app)
    assert c.post("/x", headers={"Origin": "https://app.example"}).status_code == 200
    assert c.post("/x", headers={"Origin": "https://localhost:8001"}).status_code == 403
    assert calls == [1]
