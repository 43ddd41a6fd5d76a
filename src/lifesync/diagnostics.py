"""Local environment diagnostics for the LifeSync web app."""

import socket
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import httpx
from loguru import logger

API_CLIENT_FILES = ("src/services/api.ts", "src/services/apiClient.ts")
API_URL_VARIABLE = "VITE_API_BASE_URL"


class CheckStatus(str, Enum):
    """Outcome of a diagnostic check."""

    GOOD = "good"
    NEEDS_FIX = "needs_fix"
    UNKNOWN = "unknown"


@dataclass
class CheckResult:
    """Status and human-readable findings of one check."""

    status: CheckStatus = CheckStatus.UNKNOWN
    details: list[str] = field(default_factory=list)


@dataclass
class DiagnosticReport:
    """Results of the checks that were run, keyed by check name."""

    checks: dict[str, CheckResult] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return bool(self.checks) and all(
            check.status == CheckStatus.GOOD for check in self.checks.values()
        )

    @property
    def recommendations(self) -> list[str]:
        if self.healthy:
            return ["System is healthy. Sync with: lifesync sync all"]

        advice = {
            "ports": "Start the API server under supervision: lifesync monitor",
            "api": "Restart the API server: lifesync monitor",
            "database": "Check the database the API server uses, then re-run: lifesync diagnose db",
            "sync": f"Set {API_URL_VARIABLE} in the web app's .env file",
        }
        return [
            advice[name]
            for name, check in self.checks.items()
            if check.status != CheckStatus.GOOD and name in advice
        ]

    def to_dict(self) -> dict:
        return {
            "healthy": self.healthy,
            "checks": {
                name: {"status": check.status.value, "details": check.details}
                for name, check in self.checks.items()
            },
            "recommendations": self.recommendations,
        }


class Diagnostics:
    """Runs connectivity and configuration checks against a local setup."""

    CHECKS = ("ports", "api", "database", "sync")

    def __init__(
        self,
        api_url: str = "http://localhost:3001",
        project_dir: Path | None = None,
        api_port: int = 3001,
        frontend_port: int = 5173,
        host: str = "localhost",
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize diagnostics.

        Args:
            api_url: Base URL of the API server
            project_dir: Web app checkout holding .env. Defaults to cwd.
            api_port: Port the API server listens on
            frontend_port: Port of the frontend dev server
            host: Host probed for open ports
            transport: Optional httpx transport, used by tests
        """
        self.api_url = api_url.rstrip("/")
        self.project_dir = project_dir or Path.cwd()
        self.api_port = api_port
        self.frontend_port = frontend_port
        self.host = host
        self._transport = transport
        self.report = DiagnosticReport()

    def _port_open(self, port: int) -> bool:
        try:
            with socket.create_connection((self.host, port), timeout=1.0):
                return True
        except OSError:
            return False

    def _get(self, endpoint: str, timeout: float) -> httpx.Response:
        with httpx.Client(
            base_url=f"{self.api_url}/api", timeout=timeout, transport=self._transport
        ) as client:
            response = client.get(endpoint)
            response.raise_for_status()
            return response

    def check_ports(self) -> CheckResult:
        """Is the API port serving, is the frontend port taken."""
        result = CheckResult()
        if self._port_open(self.api_port):
            result.details.append(f"Port {self.api_port}: in use (API server running)")
            result.status = CheckStatus.GOOD
        else:
            result.details.append(f"Port {self.api_port}: free (API server not running)")
            result.status = CheckStatus.NEEDS_FIX

        if self._port_open(self.frontend_port):
            result.details.append(f"Port {self.frontend_port}: in use (frontend may be running)")
        else:
            result.details.append(f"Port {self.frontend_port}: free")

        self.report.checks["ports"] = result
        return result

    def check_api(self) -> CheckResult:
        """GET /api/health."""
        result = CheckResult()
        try:
            self._get("/health", timeout=5.0)
        except httpx.HTTPStatusError as e:
            result.details.append(f"API at {self.api_url}: HTTP {e.response.status_code}")
            result.status = CheckStatus.NEEDS_FIX
        except httpx.HTTPError as e:
            result.details.append(f"API at {self.api_url}: {str(e) or type(e).__name__}")
            result.status = CheckStatus.NEEDS_FIX
        else:
            result.details.append(f"API at {self.api_url}: responding")
            result.status = CheckStatus.GOOD

        self.report.checks["api"] = result
        return result

    def check_database(self) -> CheckResult:
        """Fetch the task list through the API to prove the database answers."""
        api = self.report.checks.get("api") or self.check_api()
        result = CheckResult()
        if api.status != CheckStatus.GOOD:
            result.details.append("Cannot check database: API not accessible")
            result.status = CheckStatus.NEEDS_FIX
            self.report.checks["database"] = result
            return result

        try:
            tasks = self._get("/tasks", timeout=10.0).json()
        except httpx.HTTPStatusError as e:
            result.details.append(f"Database: HTTP {e.response.status_code}")
            result.status = CheckStatus.NEEDS_FIX
        except (httpx.HTTPError, ValueError) as e:
            result.details.append(f"Database: {str(e) or type(e).__name__}")
            result.status = CheckStatus.NEEDS_FIX
        else:
            count = len(tasks) if isinstance(tasks, list) else 0
            result.details.append(f"Database: connected ({count} tasks found)")
            result.status = CheckStatus.GOOD

        self.report.checks["database"] = result
        return result

    def check_sync(self) -> CheckResult:
        """Is the frontend's API URL taken from the environment."""
        result = CheckResult(status=CheckStatus.GOOD)

        clients = [self.project_dir / name for name in API_CLIENT_FILES]
        present = [path for path in clients if path.exists()]
        try:
            hardcoded = [
                path.name for path in present if API_URL_VARIABLE not in path.read_text()
            ]
            env_file = self.project_dir / ".env"
            env_configured = env_file.exists() and API_URL_VARIABLE in env_file.read_text()
        except OSError as e:
            result.details.append(f"Configuration check failed: {e}")
            result.status = CheckStatus.NEEDS_FIX
            self.report.checks["sync"] = result
            return result

        if hardcoded:
            result.details.append(f"API clients with hardcoded URLs: {', '.join(hardcoded)}")
            result.status = CheckStatus.NEEDS_FIX
        elif present:
            result.details.append("API clients: using environment variables")

        if env_configured:
            result.details.append("Environment: API URL configured")
        else:
            result.details.append(f"Environment: {API_URL_VARIABLE} missing from .env")
            result.status = CheckStatus.NEEDS_FIX

        self.report.checks["sync"] = result
        return result

    def run(self, check: str = "full") -> DiagnosticReport:
        """Run one named check, or all of them for 'full'.

        Raises:
            ValueError: If the check name is unknown
        """
        runners = {
            "ports": self.check_ports,
            "api": self.check_api,
            "database": self.check_database,
            "db": self.check_database,
            "sync": self.check_sync,
        }
        if check != "full" and check not in runners:
            raise ValueError(f"Unknown check '{check}'")

        self.report = DiagnosticReport()
        for name in self.CHECKS if check == "full" else (check,):
            logger.debug("Running {} check", name)
            runners[name]()
        return self.report
