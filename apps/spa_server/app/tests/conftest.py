import pytest

from apps.spa_server.app.core.config import Settings


@pytest.fixture
def site_dirs(tmp_path):
    """
    A throwaway site layout:
      src/client/index.html, main.js, app/layout.html
      tmp/styles.css
      build/index.html, bundle.js
    """
    client = tmp_path / "src" / "client"
    (client / "app").mkdir(parents=True)
    (client / "index.html").write_text("<html>dev shell</html>")
    (client / "main.js").write_text("console.log('dev');")
    (client / "app" / "layout.html").write_text("<div>layout</div>")

    tmpdir = tmp_path / "tmp"
    tmpdir.mkdir()
    (tmpdir / "styles.css").write_text("body{}")

    build = tmp_path / "build"
    build.mkdir()
    (build / "index.html").write_text("<html>build shell</html>")
    (build / "bundle.js").write_text("console.log('build');")

    (tmp_path / "secret.txt").write_text("do not serve")
    return tmp_path


@pytest.fixture
def make_settings(site_dirs):
    def _make(**overrides):
        values = dict(
            APP_STAGE="dev",
            LOG_LEVEL="ERROR",
            ALLOWED_ORIGINS="https://testserver",
            SESSION_SECRET="test-session-secret",
            CLIENT_DIR=str(site_dirs / "src" / "client"),
            TMP_DIR=str(site_dirs / "tmp"),
            BUILD_DIR=str(site_dirs / "build"),
            FAVICON_PATH=None,
        )
        values.update(overrides)
        return Settings(**values)

    return _make
