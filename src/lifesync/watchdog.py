"""Supervisor for the LifeSync API server.

Spawns the server as a child process, relays its output to the log, polls
its health and data endpoints, and restarts it after a crash or a failed
check. Restarts are bounded: once the restart counter reaches the policy's
maximum the watchdog stops for good. A fully successful check resets the
counter.
"""

import asyncio
import os
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import httpx
from loguru import logger

DelayFn = Callable[[int], float]


class WatchdogState(str, Enum):
    """Lifecycle states of the watchdog."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    UNHEALTHY = "unhealthy"
    CRASHED = "crashed"
    RESTARTING = "restarting"
    STOPPED_PERMANENTLY = "stopped_permanently"


def fixed_delay(seconds: float) -> DelayFn:
    """Delay function that waits the same time before every restart."""

    def delay(attempt: int) -> float:
        return seconds

    return delay


@dataclass
class RestartPolicy:
    """How often and how quickly to restart a failed server."""

    max_restarts: int = 10
    delay: DelayFn = field(default_factory=lambda: fixed_delay(5.0))


@dataclass
class HealthStatus:
    """Result of one endpoint probe."""

    healthy: bool
    error: str | None = None
    data: Any = None


class Checker(Protocol):
    async def check_health(self) -> HealthStatus: ...
    async def check_data(self) -> HealthStatus: ...


class ChildProcess(Protocol):
    pid: int
    returncode: int | None
    stdout: asyncio.StreamReader | None
    stderr: asyncio.StreamReader | None

    async def wait(self) -> int: ...
    def terminate(self) -> None: ...
    def kill(self) -> None: ...


Spawner = Callable[[Sequence[str], dict[str, str], Path | None], Awaitable[ChildProcess]]


async def spawn_process(
    command: Sequence[str], env: dict[str, str], cwd: Path | None
) -> asyncio.subprocess.Process:
    """Start the server with piped output."""
    return await asyncio.create_subprocess_exec(
        *command,
        env=env,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )


class HealthChecker:
    """Probes the API server's health and data endpoints."""

    def __init__(
        self,
        api_url: str = "http://localhost:3001",
        health_timeout: float = 5.0,
        data_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.health_timeout = health_timeout
        self.data_timeout = data_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.api_url}/api", transport=self._transport
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _probe(
        self, endpoint: str, timeout: float, params: dict[str, Any] | None = None
    ) -> HealthStatus:
        try:
            response = await self.client.get(endpoint, params=params, timeout=timeout)
            response.raise_for_status()
            data = response.json() if response.content else None
        except httpx.HTTPStatusError as e:
            return HealthStatus(healthy=False, error=f"HTTP {e.response.status_code}")
        except httpx.TimeoutException:
            return HealthStatus(healthy=False, error=f"Timed out after {timeout}s")
        except httpx.HTTPError as e:
            return HealthStatus(healthy=False, error=str(e) or type(e).__name__)
        except ValueError:
            return HealthStatus(healthy=False, error="Invalid JSON response")
        return HealthStatus(healthy=True, data=data)

    async def check_health(self) -> HealthStatus:
        """GET /api/health."""
        return await self._probe("/health", self.health_timeout)

    async def check_data(self) -> HealthStatus:
        """GET /api/tasks?limit=1, proving the database answers."""
        return await self._probe("/tasks", self.data_timeout, params={"limit": 1})


class ProcessWatchdog:
    """Keeps one server process alive."""

    def __init__(
        self,
        command: Sequence[str],
        checker: Checker,
        policy: RestartPolicy | None = None,
        port: int = 3001,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        check_interval: float = 15.0,
        initial_delay: float = 10.0,
        stop_timeout: float = 5.0,
        spawner: Spawner = spawn_process,
    ):
        """Initialize the watchdog.

        Args:
            command: Server command line
            checker: Health/data prober
            policy: Restart bounds and delay
            port: Passed to the server as PORT
            cwd: Server working directory
            env: Extra environment variables for the server
            check_interval: Seconds between periodic checks
            initial_delay: Seconds before the first periodic check
            stop_timeout: Grace period between SIGTERM and SIGKILL
            spawner: Coroutine that starts the process
        """
        self.command = list(command)
        self.checker = checker
        self.policy = policy or RestartPolicy()
        self.cwd = cwd
        self.env = {**os.environ, **(env or {}), "PORT": str(port)}
        self.check_interval = check_interval
        self.initial_delay = initial_delay
        self.stop_timeout = stop_timeout
        self._spawner = spawner

        self._state = WatchdogState.STOPPED
        self._active = False
        self._process: ChildProcess | None = None
        self._restart_count = 0
        self._restart_task: asyncio.Task | None = None
        self._health_task: asyncio.Task | None = None
        self._io_tasks: set[asyncio.Task] = set()
        self._stopped = asyncio.Event()

    @property
    def state(self) -> WatchdogState:
        return self._state

    @property
    def restart_count(self) -> int:
        return self._restart_count

    @property
    def restart_pending(self) -> bool:
        return self._restart_task is not None and not self._restart_task.done()

    @property
    def process(self) -> ChildProcess | None:
        return self._process

    def _set_state(self, state: WatchdogState) -> None:
        if state != self._state:
            logger.debug("Watchdog state {} -> {}", self._state.value, state.value)
        self._state = state

    def _track(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._io_tasks.add(task)
        task.add_done_callback(self._io_tasks.discard)

    # --- Process lifecycle ---

    async def start(self) -> None:
        """Spawn the server, replacing any previous child."""
        self._active = True
        self._set_state(WatchdogState.STARTING)
        await self._terminate_process()

        logger.info("Starting API server: {}", " ".join(self.command))
        try:
            process = await self._spawner(self.command, self.env, self.cwd)
        except OSError as e:
            logger.error("Failed to start API server: {}", e)
            self._set_state(WatchdogState.CRASHED)
            await self.schedule_restart()
            return

        self._process = process
        logger.info("API server started (pid {})", process.pid)
        if process.stdout is not None:
            self._track(self._pump(process.stdout, "STDOUT"))
        if process.stderr is not None:
            self._track(self._pump(process.stderr, "STDERR"))
        self._track(self._watch_exit(process))
        self._set_state(WatchdogState.RUNNING)

        if self._health_task is None:
            self._health_task = asyncio.create_task(self._health_loop())

    async def _pump(self, stream: asyncio.StreamReader, label: str) -> None:
        async for line in stream:
            text = line.decode(errors="replace").rstrip()
            if text:
                logger.info("[{}] {}", label, text)

    async def _watch_exit(self, process: ChildProcess) -> None:
        code = await process.wait()
        # Children we terminated ourselves are no longer self._process
        if process is not self._process or not self._active or self.restart_pending:
            return

        logger.error("API server exited unexpectedly (code {})", code)
        self._set_state(WatchdogState.CRASHED)
        await self.schedule_restart()

    async def _terminate_process(self) -> None:
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return

        logger.info("Stopping API server (pid {})", process.pid)
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
        except asyncio.TimeoutError:
            logger.warning("API server did not exit after {}s, killing it", self.stop_timeout)
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    # --- Restarts ---

    async def schedule_restart(self) -> None:
        """Count a failure and restart after the policy's delay.

        Triggers that arrive while a restart is already pending belong to the
        same failure and are ignored.
        """
        if not self._active or self.restart_pending:
            return

        self._restart_count += 1
        if self._restart_count >= self.policy.max_restarts:
            logger.error(
                "API server failed {} times, giving up", self._restart_count
            )
            await self.stop(final_state=WatchdogState.STOPPED_PERMANENTLY)
            return

        delay = self.policy.delay(self._restart_count)
        logger.warning(
            "Restarting API server in {}s (attempt {}/{})",
            delay,
            self._restart_count,
            self.policy.max_restarts,
        )
        self._set_state(WatchdogState.RESTARTING)
        self._restart_task = asyncio.create_task(self._restart_after(delay))

    async def _restart_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        # No longer pending: a failure during start() must be able to reschedule
        self._restart_task = None
        if self._active:
            await self.start()

    # --- Health checks ---

    async def perform_health_check(self) -> bool:
        """Run one process, health and data check.

        Returns:
            True if the server passed every check
        """
        if not self._active or self.restart_pending or self._state == WatchdogState.STARTING:
            return False

        process = self._process
        if process is None or process.returncode is not None:
            logger.error("API server process is not running")
            self._set_state(WatchdogState.CRASHED)
            await self.schedule_restart()
            return False

        for name, probe in (
            ("Health", self.checker.check_health),
            ("Data", self.checker.check_data),
        ):
            status = await probe()
            if not self._active or self.restart_pending:
                return False
            if not status.healthy:
                logger.warning("{} check failed: {}", name, status.error)
                self._set_state(WatchdogState.UNHEALTHY)
                await self.schedule_restart()
                return False

        if self._restart_count:
            logger.info("API server healthy again, resetting restart counter")
        self._restart_count = 0
        self._set_state(WatchdogState.RUNNING)
        return True

    async def _health_loop(self) -> None:
        await asyncio.sleep(self.initial_delay)
        while self._active:
            await self.perform_health_check()
            await asyncio.sleep(self.check_interval)

    # --- Shutdown ---

    async def stop(self, final_state: WatchdogState = WatchdogState.STOPPED) -> None:
        """Cancel timers and terminate the server."""
        self._active = False

        current = asyncio.current_task()
        pending = [
            task
            for task in (self._restart_task, self._health_task, *self._io_tasks)
            if task is not None and task is not current and not task.done()
        ]
        for task in pending:
            task.cancel()
        self._restart_task = None
        self._health_task = None
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self._terminate_process()
        self._set_state(final_state)
        self._stopped.set()

    async def run(self) -> WatchdogState:
        """Start the server and supervise it until stopped.

        Returns:
            The final state, STOPPED or STOPPED_PERMANENTLY
        """
        self._stopped.clear()
        await self.start()
        await self._stopped.wait()
        return self._state
