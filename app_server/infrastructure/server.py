"""Server Lifecycle — listener ownership, signal handling and graceful shutdown.

Invariants:
    - State machine: STARTING → SERVING → SHUTTING_DOWN → STOPPED, never backwards
    - SERVING → SHUTTING_DOWN only through request_shutdown() (signal handlers call it)
    - The listener is bound before serving starts; a bind failure raises ListenerBindError
    - Shutdown stops accepting connections, drains in-flight requests for at most
      grace_period seconds, then force-closes; a timeout is reported, never raised
    - Signals: SIGINT everywhere, SIGTERM where the platform delivers it

Design Decisions:
    - uvicorn's own signal capture is disabled; this controller owns the signals so the
      main task can wait on a single event
"""

import asyncio
import contextlib
import logging
import signal
import socket
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import uvicorn
from fastapi import FastAPI

from app_server.config import Settings
from app_server.core.errors import ListenerBindError

logger = logging.getLogger(__name__)

GRACE_PERIOD_SECONDS = 5.0
# Extra wait after the grace period before the serving task is cancelled outright.
# uvicorn drains for grace + this, so the controller's own deadline always fires first.
FORCE_CLOSE_SECONDS = 1.0
STARTUP_POLL_SECONDS = 0.01


class LifecycleState(str, Enum):
    STARTING = "starting"
    SERVING = "serving"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ShutdownResult:
    """Outcome of one shutdown: clean drain or grace-period timeout."""
    clean: bool
    duration: float
    trigger: str | None = None

    @property
    def timed_out(self) -> bool:
        return not self.clean


def shutdown_signals() -> tuple[signal.Signals, ...]:
    """Signals that trigger graceful shutdown on this platform."""
    signals = [signal.SIGINT]
    if sys.platform != "win32" and hasattr(signal, "SIGTERM"):
        signals.append(signal.SIGTERM)
    return tuple(signals)


class _ManagedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to ServerController."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class ServerController:
    """Runs one FastAPI app on one listener until asked to stop."""

    def __init__(
        self,
        app: FastAPI,
        settings: Settings,
        grace_period: float = GRACE_PERIOD_SECONDS,
        handle_signals: bool = True,
    ):
        self.app = app
        self.settings = settings
        self.grace_period = grace_period
        self.handle_signals = handle_signals
        self._state = LifecycleState.STARTING
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop: asyncio.Event | None = None
        self._trigger: str | None = None
        self._port: int | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def bound_port(self) -> int | None:
        """Actual listening port (differs from settings when port is 0)."""
        return self._port

    def _set_state(self, state: LifecycleState) -> None:
        logger.debug(
            f"Lifecycle {self._state.value} → {state.value}",
            extra={"state": state.value},
        )
        self._state = state

    # ─── Listener ───────────────────────────────────────────────

    def bind(self) -> socket.socket:
        """Bind the listening socket. Raises ListenerBindError."""
        server = self.settings.server
        family = socket.AF_INET6 if ":" in server.host else socket.AF_INET
        try:
            sock = socket.create_server((server.host, server.port), family=family)
        except OSError as e:
            raise ListenerBindError(server.address, e.strerror or str(e)) from e
        self._port = sock.getsockname()[1]
        return sock

    def _uvicorn_config(self) -> uvicorn.Config:
        return uvicorn.Config(
            self.app,
            log_config=None,
            access_log=False,
            lifespan="on",
            timeout_keep_alive=self.settings.server.read_timeout,
            timeout_graceful_shutdown=self.grace_period + FORCE_CLOSE_SECONDS,
        )

    # ─── Signals ────────────────────────────────────────────────

    def request_shutdown(self, trigger: str = "request") -> None:
        """Ask a serving controller to shut down. Safe from any thread."""
        if self._trigger is None:
            self._trigger = trigger
        if self._loop is None or self._stop is None:
            return
        self._loop.call_soon_threadsafe(self._stop.set)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down gracefully")
        self.request_shutdown(sig.name)

    def _install_signal_handlers(self) -> Callable[[], None]:
        """Register shutdown signals; return a callable that restores the previous handlers."""
        loop = self._loop
        restorers: list[Callable[[], None]] = []
        for sig in shutdown_signals():
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
                restorers.append(lambda s=sig: loop.remove_signal_handler(s))
            except NotImplementedError:
                # Proactor loops (Windows) have no add_signal_handler.
                previous = signal.signal(
                    sig, lambda signum, frame: self._on_signal(signal.Signals(signum)),
                )
                restorers.append(lambda s=sig, p=previous: signal.signal(s, p))
            except (ValueError, RuntimeError) as e:
                logger.warning(f"Cannot handle {sig.name} outside the main thread: {e}")
        names = ", ".join(sig.name for sig in shutdown_signals())
        logger.info(f"Registered shutdown signals: {names}")

        def restore() -> None:
            for restorer in restorers:
                restorer()
        return restore

    # ─── Lifecycle ──────────────────────────────────────────────

    async def serve(self) -> ShutdownResult:
        """Serve until shutdown is requested, then drain and stop."""
        if self._state is not LifecycleState.STARTING:
            raise RuntimeError("ServerController can only be started once")
        self._loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()

        try:
            sock = self.bind()
        except ListenerBindError:
            self._set_state(LifecycleState.STOPPED)
            raise

        server = _ManagedServer(self._uvicorn_config())
        restore_signals = (
            self._install_signal_handlers() if self.handle_signals else (lambda: None)
        )
        serve_task = asyncio.create_task(server.serve(sockets=[sock]))
        try:
            await self._wait_started(server, serve_task)
            self._set_state(LifecycleState.SERVING)
            host = self.settings.server.host
            logger.info(f"{self.settings.app.name} listening on {host}:{self.bound_port}")
            logger.info(f"Health check: http://{host}:{self.bound_port}/health")
            if self._trigger is not None:
                self._stop.set()

            stop_waiter = asyncio.create_task(self._stop.wait())
            await asyncio.wait(
                {stop_waiter, serve_task}, return_when=asyncio.FIRST_COMPLETED,
            )
            stop_waiter.cancel()

            self._set_state(LifecycleState.SHUTTING_DOWN)
            result = await self._shutdown(server, serve_task)
        finally:
            if not serve_task.done():
                serve_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await serve_task
            restore_signals()
            sock.close()
            self._set_state(LifecycleState.STOPPED)

        if result.clean:
            logger.info(f"Server stopped gracefully in {result.duration:.2f}s")
        return result

    async def _wait_started(
        self, server: uvicorn.Server, serve_task: asyncio.Task,
    ) -> None:
        while not server.started:
            if serve_task.done():
                serve_task.result()
                raise RuntimeError("Server exited during startup")
            await asyncio.sleep(STARTUP_POLL_SECONDS)

    async def _shutdown(
        self, server: uvicorn.Server, serve_task: asyncio.Task,
    ) -> ShutdownResult:
        logger.info(
            f"Stopping listener, waiting up to {self.grace_period:g}s "
            f"for in-flight requests",
            extra={"state": LifecycleState.SHUTTING_DOWN.value},
        )
        started = time.monotonic()
        server.should_exit = True
        try:
            await asyncio.wait_for(asyncio.shield(serve_task), timeout=self.grace_period)
            clean = True
        except asyncio.TimeoutError:
            clean = False
            logger.error(
                f"Graceful shutdown exceeded {self.grace_period:g}s, forcing close",
                extra={"error_code": "SHUTDOWN_TIMEOUT"},
            )
            server.force_exit = True
            try:
                await asyncio.wait_for(serve_task, timeout=FORCE_CLOSE_SECONDS)
            except asyncio.TimeoutError:
                logger.error("Server task did not stop after force close; abandoned")
        return ShutdownResult(
            clean=clean,
            duration=time.monotonic() - started,
            trigger=self._trigger,
        )

    def run(self) -> ShutdownResult:
        """Blocking entry point: serve on a fresh event loop."""
        return asyncio.run(self.serve())
