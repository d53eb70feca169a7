"""
Reconciliation engine.

For each configured source, decides whether to create a new webhook message,
edit the existing one, or do nothing, and keeps the state store consistent
with what was sent.

Per-source flow for one cycle:

    validate existing id -> fetch -> normalize -> compare -> create | update | skip

State ordering:
- Create path: ``last_content`` is set before the call, the store is saved
  only after the API returns the new message id.
- Update path: ``last_content`` is saved before the edit is sent. A crash
  after a successful edit can never replay a stale diff; a failed edit is
  not retried until the document changes again.
"""

from typing import Iterable

import structlog

from src.config.sources import SourceConfig
from src.mirror.fetcher import ContentFetcher
from src.mirror.gateway import MessageGateway
from src.mirror.normalizer import normalize_content
from src.mirror.schemas import ReconcileOutcome, SourceResult, SourceState, UpdateResult
from src.mirror.state_store import StateStore
from src.observability.metrics import MetricsCollector

logger = structlog.get_logger(__name__)


class ReconciliationEngine:
    """
    Mirrors fetched documents into webhook messages.

    Sources are processed strictly one at a time in configuration order.
    A failure while handling one source is logged and never affects the
    others.

    Usage:
        engine = ReconciliationEngine(store, fetcher, gateway)
        results = await engine.run_cycle(sources)
    """

    def __init__(
        self,
        store: StateStore,
        fetcher: ContentFetcher,
        gateway: MessageGateway,
        metrics: MetricsCollector | None = None,
    ):
        self._store = store
        self._fetcher = fetcher
        self._gateway = gateway
        self._metrics = metrics

    @property
    def store(self) -> StateStore:
        return self._store

    async def run_cycle(self, sources: Iterable[SourceConfig]) -> list[SourceResult]:
        """
        Reconcile every source once, sequentially.

        Returns:
            One SourceResult per source, in configuration order.
        """
        results = []
        for source in sources:
            try:
                result = await self.reconcile_source(source)
            except Exception as e:
                logger.exception(
                    "Unexpected error reconciling source",
                    source=source.name,
                    operation="reconcile",
                    error=str(e),
                )
                state = self._store.get(source.name)
                result = SourceResult(
                    source=source.name,
                    outcome=ReconcileOutcome.FAILED,
                    message_id=state.message_id if state else "",
                )
            if self._metrics is not None:
                self._metrics.record_outcome(source.name, result.outcome.value)
            results.append(result)
        return results

    async def reconcile_source(self, source: SourceConfig) -> SourceResult:
        """Run validation, fetch, comparison, and create-or-update for one source."""
        state = self._store.get_or_create(source.name)

        had_message = state.has_message
        await self._gateway.validate_existing(source, state)
        if had_message and not state.has_message:
            self._store.save()

        logger.info("Checking for updates", source=source.name)
        content = normalize_content(await self._fetcher.fetch(source.markdown_url))

        if not content:
            logger.info("No content fetched", source=source.name)
            return self._result(source, state, ReconcileOutcome.SKIPPED)

        if not state.message_id:
            logger.info("No message ID found, creating", source=source.name)
            return await self._create(source, state, content, ReconcileOutcome.CREATED)

        if content != state.last_content:
            logger.info("Content changed, updating", source=source.name)
            return await self._update(source, state, content)

        logger.info("No changes detected", source=source.name)
        return self._result(source, state, ReconcileOutcome.UNCHANGED)

    async def _create(
        self,
        source: SourceConfig,
        state: SourceState,
        content: str,
        outcome: ReconcileOutcome,
    ) -> SourceResult:
        state.last_content = content
        message_id = await self._gateway.create_message(source, content)
        if not message_id:
            return self._result(source, state, ReconcileOutcome.FAILED)

        state.message_id = message_id
        self._store.save()
        return self._result(source, state, outcome)

    async def _update(
        self,
        source: SourceConfig,
        state: SourceState,
        content: str,
    ) -> SourceResult:
        state.last_content = content
        self._store.save()

        result = await self._gateway.update_message(source, state.message_id, content)
        if result is UpdateResult.UPDATED:
            return self._result(source, state, ReconcileOutcome.UPDATED)
        if result is UpdateResult.NOT_FOUND:
            logger.warning("Message was deleted, creating new", source=source.name)
            state.message_id = ""
            self._store.save()
            return await self._create(source, state, state.last_content, ReconcileOutcome.RECREATED)
        return self._result(source, state, ReconcileOutcome.FAILED)

    @staticmethod
    def _result(
        source: SourceConfig,
        state: SourceState,
        outcome: ReconcileOutcome,
    ) -> SourceResult:
        return SourceResult(source=source.name, outcome=outcome, message_id=state.message_id)
