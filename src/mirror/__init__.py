"""Document-to-webhook mirroring.

Components:
- normalize_content: Canonical form used for change detection
- ContentFetcher: Fetches document text, "" on any failure
- MessageGateway: Validate/create/update webhook messages
- StateStore / SourceState: Durable per-source message id and last content
- ReconciliationEngine: Per-source create-or-update decision
- MirrorService: Fixed-interval poll loop over all sources
- MirrorConfig: Pydantic settings for payload limits
"""

from src.mirror.config import MirrorConfig
from src.mirror.engine import ReconciliationEngine
from src.mirror.fetcher import ContentFetcher
from src.mirror.gateway import MessageGateway, WebhookError, truncate_content
from src.mirror.normalizer import normalize_content
from src.mirror.schemas import ReconcileOutcome, SourceResult, SourceState, UpdateResult
from src.mirror.service import MirrorService
from src.mirror.state_store import StateStore, StateStoreError

__all__ = [
    "ContentFetcher",
    "MessageGateway",
    "MirrorConfig",
    "MirrorService",
    "ReconcileOutcome",
    "ReconciliationEngine",
    "SourceResult",
    "SourceState",
    "StateStore",
    "StateStoreError",
    "UpdateResult",
    "WebhookError",
    "normalize_content",
    "truncate_content",
]
