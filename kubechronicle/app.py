"""Application bootstrap for kubechronicle.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config -> logging -> store -> notifications -> rule store
              -> handler/processor -> config reloader -> REST

Shutdown is graceful: components are stopped in reverse startup order and
each stop error is caught and logged independently. Events still queued at
shutdown are abandoned.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import TYPE_CHECKING

from kubechronicle.admission.handler import AdmissionHandler
from kubechronicle.admission.processor import EventProcessor
from kubechronicle.config import load_config
from kubechronicle.models.config import KubeChronicleConfig
from kubechronicle.notifications import NotificationRouter, build_notification_router
from kubechronicle.observability.logging import get_logger, setup_logging
from kubechronicle.policy.reloader import ConfigReloader, RuleStore
from kubechronicle.store import EventStore, InMemoryEventStore

if TYPE_CHECKING:
    import structlog
    import uvicorn

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeChronicleApp:
    """Application root. Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that was never started or has
    already stopped.
    """

    def __init__(self, config: KubeChronicleConfig | None = None) -> None:
        self.config = config
        self.store: EventStore | None = None
        self.router: NotificationRouter | None = None
        self.rules: RuleStore | None = None
        self.processor: EventProcessor | None = None
        self.handler: AdmissionHandler | None = None
        self.reloader: ConfigReloader | None = None
        self._rest_server: uvicorn.Server | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self, serve: bool = True) -> None:
        """Start all components in dependency order.

        Args:
            serve: Also start the HTTPS listener. Tests pass False.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("kubechronicle starting", version=_kubechronicle_version())

        self._start_store()
        self._start_notifications()
        self._start_rules()
        await self._start_pipeline()
        await self._start_reloader()
        if serve:
            await self._start_rest()

        self._running = True
        self._log.info("kubechronicle started", port=self.config.webhook.port)

    def _start_store(self) -> None:
        """Create the event store. Non-fatal: events are logged instead."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.store.enabled:
            self._log.info("event store disabled; events will only be logged")
            return
        try:
            self.store = InMemoryEventStore(max_events=self.config.store.max_events)
            self._log.info("event store started", backend="memory", max_events=self.config.store.max_events)
        except Exception as exc:
            self._log.warning("event store failed to start; continuing without persistence", error=str(exc))
            self.store = None

    def _start_notifications(self) -> None:
        """Build the notification router. Non-fatal: alerts are suppressed."""
        assert self._log is not None
        assert self.config is not None
        try:
            self.router = build_notification_router(self.config.alerting)
            self._log.info("notifications started", enabled=self.router is not None)
        except Exception as exc:
            self._log.warning("notification router failed to start; alerts will be suppressed", error=str(exc))
            self.router = None

    def _start_rules(self) -> None:
        assert self._log is not None
        assert self.config is not None
        policy = self.config.policy
        self.rules = RuleStore(ignore=policy.ignore, block=policy.block)
        self._log.info(
            "rule store started",
            ignore_configured=policy.ignore is not None,
            block_configured=policy.block is not None,
        )

    async def _start_pipeline(self) -> None:
        """Start the event processor and build the admission handler."""
        assert self._log is not None
        assert self.config is not None
        assert self.rules is not None
        try:
            processor = EventProcessor(
                store=self.store,
                router=self.router,
                maxsize=self.config.processor.queue_size,
            )
            await processor.start()
            self.processor = processor
            self.handler = AdmissionHandler(rules=self.rules, sink=processor)
            self._log.info("admission pipeline started", queue_size=self.config.processor.queue_size)
        except Exception as exc:
            raise _ComponentError("pipeline", exc) from exc

    async def _start_reloader(self) -> None:
        """Start periodic rule reloads when the patterns directory is mounted."""
        assert self._log is not None
        assert self.config is not None
        assert self.rules is not None
        policy = self.config.policy
        if not policy.patterns_path:
            self._log.info("config reloader disabled (no patterns path)")
            return
        reloader = ConfigReloader(self.rules, policy.patterns_path, interval=policy.reload_interval_seconds)
        if Path(policy.patterns_path).is_dir():
            # Mounted files win over the environment from the first request on.
            await asyncio.to_thread(reloader.reload)
        await reloader.start()
        self.reloader = reloader
        self._log.info(
            "config reloader started",
            path=policy.patterns_path,
            interval_seconds=policy.reload_interval_seconds,
        )

    async def _start_rest(self) -> None:
        """Start the uvicorn HTTPS server."""
        assert self._log is not None
        assert self.config is not None
        assert self.handler is not None
        try:
            import uvicorn

            from kubechronicle.api import create_app

            webhook = self.config.webhook
            tls_kwargs = {}
            if webhook.tls_enabled:
                tls_kwargs = {"ssl_certfile": webhook.tls_cert_path, "ssl_keyfile": webhook.tls_key_path}
            uv_config = uvicorn.Config(
                app=create_app(handler=self.handler),
                host="0.0.0.0",
                port=webhook.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
                timeout_keep_alive=120,
                **tls_kwargs,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("webhook server started", port=webhook.port, tls=webhook.tls_enabled)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubechronicle shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True
        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None

        await self._stop_component("reloader", self.reloader)
        await self._stop_component("processor", self.processor)
        await self._stop_component("notifications", self.router)
        if self.store is not None:
            try:
                await asyncio.wait_for(self.store.close(), timeout=_SHUTDOWN_GRACE_SECONDS)
            except Exception as exc:
                log.error("component stop raised an error", component="store", error=str(exc))

        log.info("kubechronicle stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _kubechronicle_version() -> str:
    from kubechronicle import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeChronicleApp()
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await app.start()
        await shutdown.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical("fatal startup error", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
