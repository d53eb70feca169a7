"""Message gateway for chat-webhook messages.

Wraps the three webhook operations the reconciliation engine needs against
a per-source webhook base URL:

- validate: ``GET {webhook}/messages/{id}``
- create:   ``POST {webhook}?wait=true``
- update:   ``PATCH {webhook}/messages/{id}``

HTTP 404 has defined meaning (the message was deleted remotely). Every other
failure is logged with the source name and operation and reported to the
caller as a non-success value; nothing here raises past the operation
boundary.
"""

from typing import Any

import httpx
import structlog

from src.config.sources import SourceConfig
from src.mirror.config import MirrorConfig
from src.mirror.schemas import SourceState, UpdateResult
from src.observability.metrics import MetricsCollector

logger = structlog.get_logger(__name__)


class WebhookError(Exception):
    """Raised internally when a webhook request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


def truncate_content(content: str, limit: int = 2000, suffix: str = "...") -> str:
    """Cut ``content`` down to ``limit`` characters, ending with ``suffix``.

    Content at or under the limit is returned unchanged.
    """
    if len(content) <= limit:
        return content
    return content[: limit - len(suffix)] + suffix


class MessageGateway:
    """
    Creates, edits, and checks webhook messages.

    The HTTP client is owned by the caller (see MirrorService) and shared
    with the content fetcher.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: MirrorConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._client = client
        self._config = config or MirrorConfig()
        self._metrics = metrics

    def build_payload(self, content: str) -> dict[str, str]:
        """Build the JSON body for a create or update call."""
        return {
            "content": truncate_content(
                content,
                limit=self._config.max_message_length,
                suffix=self._config.truncation_suffix,
            )
        }

    @staticmethod
    def message_url(source: SourceConfig, message_id: str) -> str:
        return f"{source.webhook_url}/messages/{message_id}"

    async def validate_existing(self, source: SourceConfig, state: SourceState) -> bool:
        """Check that the message referenced by ``state`` still exists.

        Clears ``state.message_id`` when the API reports the message as
        missing. Leaves state untouched on any other failure.

        Returns:
            True if the message exists, there was nothing to check, or a
            stale id was cleared; False if the check itself failed.
        """
        if not state.message_id:
            return True

        try:
            await self._send("GET", self.message_url(source, state.message_id))
        except WebhookError as e:
            if e.is_not_found:
                logger.warning(
                    "Message not found, will create new",
                    source=source.name,
                    message_id=state.message_id,
                )
                state.message_id = ""
                return True
            self._record_error("validate")
            logger.error(
                "Error validating message",
                source=source.name,
                operation="validate",
                status_code=e.status_code,
                error=str(e),
            )
            return False

        logger.info("Existing message validated", source=source.name)
        return True

    async def create_message(self, source: SourceConfig, content: str) -> str | None:
        """Post ``content`` as a new message.

        Returns:
            The new message id, or None if creation failed.
        """
        # wait=true makes the API return the created message, including its id
        params = {"wait": "true"}
        try:
            response = await self._send(
                "POST",
                source.webhook_url,
                params=params,
                json_body=self.build_payload(content),
            )
        except WebhookError as e:
            self._record_error("create")
            logger.error(
                "Error sending new message",
                source=source.name,
                operation="create",
                status_code=e.status_code,
                error=str(e),
            )
            return None

        message_id = self._extract_id(response)
        if not message_id:
            self._record_error("create")
            logger.error(
                "Failed to get message ID",
                source=source.name,
                operation="create",
                status_code=response.status_code,
            )
            return None

        logger.info("New message sent", source=source.name, message_id=message_id)
        return message_id

    async def update_message(
        self,
        source: SourceConfig,
        message_id: str,
        content: str,
    ) -> UpdateResult:
        """Replace the content of an existing message.

        Returns:
            UPDATED on success, NOT_FOUND if the message no longer exists
            (the caller falls back to creating one), FAILED otherwise.
        """
        try:
            await self._send(
                "PATCH",
                self.message_url(source, message_id),
                json_body=self.build_payload(content),
            )
        except WebhookError as e:
            if e.is_not_found:
                logger.warning(
                    "Message not found (deleted?)",
                    source=source.name,
                    message_id=message_id,
                )
                return UpdateResult.NOT_FOUND
            self._record_error("update")
            logger.error(
                "Error updating message",
                source=source.name,
                operation="update",
                status_code=e.status_code,
                error=str(e),
            )
            return UpdateResult.FAILED

        logger.info("Message updated", source=source.name, message_id=message_id)
        return UpdateResult.UPDATED

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Issue one request, raising WebhookError on transport or status failure."""
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json_body,
            )
        except httpx.TimeoutException as e:
            raise WebhookError(f"{method} request timed out") from e
        except httpx.HTTPError as e:
            raise WebhookError(f"{method} request failed: {e}") from e

        if not response.is_success:
            raise WebhookError(
                f"{method} request failed with status {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )
        return response

    @staticmethod
    def _extract_id(response: httpx.Response) -> str | None:
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        message_id = data.get("id")
        if message_id is None or message_id == "":
            return None
        return str(message_id)

    def _record_error(self, operation: str) -> None:
        if self._metrics is not None:
            self._metrics.record_webhook_error(operation)
