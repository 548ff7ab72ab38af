import pytest
from fastapi.testclient import TestClient

from apps.spa_server.app.main import create_app
from apps.spa_server.app.routers.static_site import resolve_static


@pytest.fixture
def dev_client(make_settings):
    return TestClient(create_app(make_settings(APP_STAGE="dev")), base_url="https://testserver")


@pytest.fixture
def build_client(make_settings):
    return TestClient(create_app(make_settings(APP_STAGE="build")), base_url="https://testserver")


# ---------------- dev stage ----------------

def test_dev_root_serves_client_index(dev_client):
    r = dev_client.get("/")
    assert r.status_code == 200
    assert "dev shell" in r.text
    assert r.headers["X-Frame-Options"] == "DENY"


def test_dev_serves_client_files_then_tmp(dev_client):
    js = dev_client.get("/main.js")
    assert js.status_code == 200
    assert "console.log('dev')" in js.text

    css = dev_client.get("/styles.css")
    assert css.status_code == 200
    assert css.text == "body{}"


def test_dev_serves_existing_template(dev_client):
    r = dev_client.get("/app/layout.html")
    assert r.status_code == 200
    assert "layout" in r.text


def test_missing_template_is_404_not_shell(dev_client):
    r = dev_client.get("/app/missing.html")
    assert r.status_code == 404
    body = r.json()
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["error"]["details"]["path"] == "/app/missing.html"


def test_deep_link_returns_shell(dev_client):
    r = dev_client.get("/customers/42/edit")
    assert r.status_code == 200
    assert "dev shell" in r.text
    assert r.headers["content-type"].startswith("text/html")


def test_head_is_served(dev_client):
    r = dev_client.head("/main.js")
    assert r.status_code == 200


def test_api_routes_win_over_catch_all(dev_client):
    assert dev_client.get("/healthz").json()["status"] == "ok"


# ---------------- build stage ----------------

def test_build_serves_bundle_and_shell(build_client):
    assert "build shell" in build_client.get("/").text
    assert "console.log('build')" in build_client.get("/bundle.js").text
    assert "build shell" in build_client.get("/some/deep/link").text


def test_build_does_not_serve_dev_sources(build_client):
    r = build_client.get("/main.js")
    # falls through to the shell, never the dev file
    assert "console.log('dev')" not in r.text


def test_build_hides_api_docs(build_client, dev_client):
    assert dev_client.get("/openapi.json").status_code == 200
    assert "build shell" in build_client.get("/openapi.json").text


def test_no_shell_means_404(make_settings, tmp_path):
    c = TestClient(create_app(make_settings(APP_STAGE="build", BUILD_DIR=str(tmp_path / "empty"))), base_url="https://testserver")
    assert c.get("/anything").status_code == 404


# ---------------- favicon ----------------

def test_favicon_served_when_configured(make_settings, site_dirs):
    icon = site_dirs / "favicon.ico"
    icon.write_bytes(b"\x00\x00\x01\x00")
    c = TestClient(create_app(make_settings(FAVICON_PATH=str(icon))), base_url="https://testserver")
    r = c.get("/favicon.ico")
    assert r.status_code == 200
    assert r.content == b"\x00\x00\x01\x00"
    assert r.headers["content-type"] == "image/x-icon"


# ---------------- resolve_static ----------------

def test_resolve_static_first_root_wins(site_dirs):
    client = site_dirs / "src" / "client"
    (site_dirs / "tmp" / "main.js").write_text("shadowed")
    hit = resolve_static([client, site_dirs / "tmp"], "main.js")
    assert hit == (client / "main.js").resolve()


def test_resolve_static_blocks_traversal(site_dirs):
    client = site_dirs / "src" / "client"
    assert resolve_static([client], "../../secret.txt") is None
    assert resolve_static([client], "/../../secret.txt") is None


def test_resolve_static_directory_uses_index(site_dirs):
    client = site_dirs / "src" / "client"
    assert resolve_static([client], "") == (client / "index.html").resolve()
    assert resolve_static([client], "app") is None


@pytest.mark.parametrize("path", ["/%00", "/app%00/x", "/main.js%00.html"])
def test_nul_byte_paths_are_404(dev_client, path):
    r = dev_client.get(path)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


def test_resolve_static_nul_byte_is_a_miss(site_dirs):
    assert resolve_static([site_dirs / "src" / "client"], "main.js\x00") is None


def test_dev_has_no_swagger_ui(dev_client):
    # /docs is not a route; the catch-all answers with the SPA shell
    r = dev_client.get("/docs")
    assert "swagger" not in r.text.lower()
    assert "dev shell" in r.text
