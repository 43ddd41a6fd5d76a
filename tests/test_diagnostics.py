"""Tests for local environment diagnostics."""

import socket

import httpx
import pytest

from lifesync.diagnostics import CheckStatus, Diagnostics


def api_handler(health_status: int = 200, tasks=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/health":
            return httpx.Response(health_status, json={"status": "ok"})
        if request.url.path == "/api/tasks":
            return httpx.Response(200, json=tasks if tasks is not None else [])
        return httpx.Response(404)

    return handler


@pytest.fixture
def listening_port():
    """A port with something listening on it."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen()
    yield server.getsockname()[1]
    server.close()


@pytest.fixture
def free_port():
    """A port nothing is listening on."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


@pytest.fixture
def web_project(tmp_path):
    """Web app checkout with env-driven API clients."""
    services = tmp_path / "src" / "services"
    services.mkdir(parents=True)
    (services / "api.ts").write_text("const base = import.meta.env.VITE_API_BASE_URL;\n")
    (tmp_path / ".env").write_text("VITE_API_BASE_URL=http://localhost:3001/api\n")
    return tmp_path


def make_diagnostics(project_dir, handler=None, **kwargs):
    return Diagnostics(
        api_url="http://api.test",
        project_dir=project_dir,
        host="127.0.0.1",
        transport=httpx.MockTransport(handler or api_handler()),
        **kwargs,
    )


class TestPorts:
    """Tests for the port check."""

    def test_api_port_in_use(self, tmp_path, listening_port, free_port):
        diagnostics = make_diagnostics(tmp_path, api_port=listening_port, frontend_port=free_port)
        result = diagnostics.check_ports()

        assert result.status == CheckStatus.GOOD
        assert f"Port {listening_port}: in use (API server running)" in result.details
        assert f"Port {free_port}: free" in result.details

    def test_api_port_free(self, tmp_path, free_port):
        diagnostics = make_diagnostics(tmp_path, api_port=free_port, frontend_port=free_port)
        assert diagnostics.check_ports().status == CheckStatus.NEEDS_FIX


class TestApiAndDatabase:
    """Tests for the HTTP checks."""

    def test_api_responding(self, tmp_path):
        result = make_diagnostics(tmp_path).check_api()
        assert result.status == CheckStatus.GOOD

    def test_api_error_status(self, tmp_path):
        result = make_diagnostics(tmp_path, api_handler(health_status=500)).check_api()
        assert result.status == CheckStatus.NEEDS_FIX
        assert "HTTP 500" in result.details[0]

    def test_database_counts_tasks(self, tmp_path):
        diagnostics = make_diagnostics(tmp_path, api_handler(tasks=[{"id": 1}, {"id": 2}]))
        result = diagnostics.check_database()

        assert result.status == CheckStatus.GOOD
        assert result.details == ["Database: connected (2 tasks found)"]

    def test_database_needs_api(self, tmp_path):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        result = make_diagnostics(tmp_path, refuse).check_database()

        assert result.status == CheckStatus.NEEDS_FIX
        assert result.details == ["Cannot check database: API not accessible"]


class TestSyncConfiguration:
    """Tests for the frontend configuration check."""

    def test_configured(self, web_project):
        result = make_diagnostics(web_project).check_sync()
        assert result.status == CheckStatus.GOOD
        assert "Environment: API URL configured" in result.details

    def test_missing_env_variable(self, web_project):
        (web_project / ".env").write_text("OTHER=1\n")
        result = make_diagnostics(web_project).check_sync()
        assert result.status == CheckStatus.NEEDS_FIX

    def test_hardcoded_client(self, web_project):
        (web_project / "src" / "services" / "apiClient.ts").write_text(
            "const base = 'http://localhost:3001/api';\n"
        )
        result = make_diagnostics(web_project).check_sync()

        assert result.status == CheckStatus.NEEDS_FIX
        assert "API clients with hardcoded URLs: apiClient.ts" in result.details


class TestRun:
    """Tests for running check sets."""

    def test_full_run_healthy(self, web_project, listening_port, free_port):
        diagnostics = make_diagnostics(
            web_project, api_port=listening_port, frontend_port=free_port
        )
        report = diagnostics.run()

        assert list(report.checks) == ["ports", "api", "database", "sync"]
        assert report.healthy
        assert report.recommendations == ["System is healthy. Sync with: lifesync sync all"]

    def test_single_check(self, web_project):
        report = make_diagnostics(web_project).run("sync")
        assert list(report.checks) == ["sync"]

    def test_db_alias(self, tmp_path):
        report = make_diagnostics(tmp_path).run("db")
        assert report.checks["database"].status == CheckStatus.GOOD

    def test_recommendations_for_failures(self, tmp_path):
        report = make_diagnostics(tmp_path).run("sync")
        data = report.to_dict()

        assert data["healthy"] is False
        assert data["checks"]["sync"]["status"] == "needs_fix"
        assert data["recommendations"] == ["Set VITE_API_BASE_URL in the web app's .env file"]

    def test_unknown_check(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown check"):
            make_diagnostics(tmp_path).run("network")
