"""
Mirror service - runs the reconciliation engine on a fixed interval.

Runs one cycle immediately, then waits the poll interval after each
completed pass before starting the next one, so cycles never overlap.

Features:
- Single shared HTTP client for fetches and webhook calls
- Graceful shutdown
- Metrics collection
"""

import asyncio
import time
from typing import Any, Sequence

import httpx
import structlog

from src.config.settings import Settings, get_settings
from src.config.sources import SourceConfig
from src.mirror.config import MirrorConfig
from src.mirror.engine import ReconciliationEngine
from src.mirror.fetcher import ContentFetcher
from src.mirror.gateway import MessageGateway
from src.mirror.schemas import ReconcileOutcome, SourceResult
from src.mirror.state_store import StateStore
from src.observability.metrics import MetricsCollector

logger = structlog.get_logger(__name__)


class MirrorService:
    """
    Service that owns the poll loop, the state store, and the source list.

    Usage:
        service = MirrorService(sources, StateStore.load("data/state.json"))
        await service.start()  # Runs until stopped
    """

    def __init__(
        self,
        sources: Sequence[SourceConfig],
        store: StateStore,
        settings: Settings | None = None,
        interval_seconds: float | None = None,
        mirror_config: MirrorConfig | None = None,
        metrics: MetricsCollector | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize mirror service.

        Args:
            sources: Configured sources, processed in this order
            store: Loaded state store
            settings: Application settings (defaults to get_settings())
            interval_seconds: Poll interval override
            mirror_config: Gateway configuration
            metrics: Optional metrics collector
            client: Optional pre-built HTTP client (not closed by the service)
        """
        settings = settings or get_settings()

        self._sources = tuple(sources)
        self._store = store
        self._interval = interval_seconds or settings.poll_interval_seconds
        self._timeout = settings.http_timeout_seconds
        self._check_host = settings.check_host_reachability
        self._mirror_config = mirror_config or MirrorConfig()
        self._metrics = metrics
        self._client = client
        self._owns_client = client is None
        self._running = False
        self._task: asyncio.Task | None = None
        self._wake = asyncio.Event()
        self._cycles = 0

        logger.info(
            "Mirror service initialized",
            sources=[s.name for s in self._sources],
            poll_interval=self._interval,
        )

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        """Check if service is running."""
        return self._running

    @property
    def cycles_completed(self) -> int:
        return self._cycles

    async def start(self) -> None:
        """
        Start the poll loop.

        Runs until stop() is called.
        """
        self._running = True
        self._wake.clear()
        logger.info("Starting poller")

        try:
            self._task = asyncio.create_task(self._poll_loop(), name="mirror_poll_loop")
            await self._task
        except asyncio.CancelledError:
            logger.info("Mirror service cancelled")
        finally:
            self._running = False
            self._task = None
            await self._close_client()

    async def stop(self) -> None:
        """
        Stop the service gracefully.

        An in-flight cycle runs to completion so every message it creates
        has its id persisted; only the wait between cycles is interrupted.
        """
        logger.info("Stopping mirror service")
        self._running = False
        self._wake.set()

        if self._task is not None and not self._task.done():
            await asyncio.gather(self._task, return_exceptions=True)

    async def run_once(self) -> list[SourceResult]:
        """
        Run one reconciliation cycle over all sources.

        Useful for testing or manual triggers.
        """
        try:
            return await self._run_cycle()
        finally:
            if not self._running:
                await self._close_client()

    async def _poll_loop(self) -> None:
        while self._running:
            await self._run_cycle()
            if not self._running:
                break
            # Re-armed only after the full pass so cycles never overlap
            await self._wait_interval()

    async def _wait_interval(self) -> None:
        """Sleep for the poll interval, returning early once stop() is called."""
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            pass

    async def _run_cycle(self) -> list[SourceResult]:
        engine = self._build_engine(self._ensure_client())
        start_time = time.monotonic()

        results = await engine.run_cycle(self._sources)

        elapsed = time.monotonic() - start_time
        self._cycles += 1
        if self._metrics is not None:
            self._metrics.record_cycle(elapsed)

        failed = [r.source for r in results if r.outcome is ReconcileOutcome.FAILED]
        logger.info(
            "Cycle completed",
            cycle=self._cycles,
            sources=len(results),
            written=sum(1 for r in results if r.wrote_remote),
            failed=failed,
            elapsed_seconds=round(elapsed, 2),
        )
        return results

    def _build_engine(self, client: httpx.AsyncClient) -> ReconciliationEngine:
        return ReconciliationEngine(
            store=self._store,
            fetcher=ContentFetcher(client, check_host=self._check_host),
            gateway=MessageGateway(client, self._mirror_config, metrics=self._metrics),
            metrics=self._metrics,
        )

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
            )
        return self._client

    async def _close_client(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def health_check(self) -> dict[str, Any]:
        """Summarize the service state."""
        return {
            "running": self._running,
            "sources": len(self._sources),
            "cycles_completed": self._cycles,
            "tracked_messages": sum(1 for _, s in self._store.items() if s.has_message),
        }
