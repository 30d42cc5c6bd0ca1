"""
Evolution API (WhatsApp) integration: instance state and sent-message log.

Read-only. Every failure is folded into the returned outcome so that an
unreachable provider degrades the audit instead of aborting it. Transient
errors (network, timeouts, 5xx, 429) are retried with exponential backoff.
"""
from __future__ import annotations

import asyncio
import math
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import quote

import aiohttp

from delivery_audit.config import BACKOFF_POLICY, EVOLUTION_SETTINGS, EvolutionSettings
from delivery_audit.integrations.base import ConnectivityOutcome, MessageFetchOutcome, MessageSource
from delivery_audit.models.records import SentMessage
from delivery_audit.utils import get_logger
from delivery_audit.utils.backoff import compute_backoff_seconds
from delivery_audit.utils.time import utc_now

logger = get_logger(__name__)

NOT_CONFIGURED_REASON = "Evolution API settings are not configured"
SECONDS_PER_DAY = 24 * 60 * 60


class EvolutionAPIError(Exception):
    """Provider call failed after all retry attempts."""


def _is_transient(status: int) -> bool:
    return status == 429 or status >= 500


def extract_message_list(payload: Any) -> List[Any]:
    """Locate the message array in the shapes Evolution versions return."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, Mapping):
        return []
    messages = payload.get("messages")
    if isinstance(messages, list):
        return messages
    if isinstance(messages, Mapping) and isinstance(messages.get("records"), list):
        return messages["records"]
    data = payload.get("data")
    if isinstance(data, list):
        return data
    return []


def _sent_by_us(raw: Mapping[str, Any]) -> bool:
    key = raw.get("key")
    return not (isinstance(key, Mapping) and key.get("fromMe") is False)


def parse_sent_messages(raw_messages: Iterable[Any], *, cutoff_epoch: int, limit: int) -> List[SentMessage]:
    """Filter provider entries to our own messages inside the window.

    Keeps the `limit` most recent. Entries that are not objects are skipped.
    """
    parsed: List[SentMessage] = []
    skipped = 0
    for raw in raw_messages:
        if not isinstance(raw, Mapping):
            skipped += 1
            continue
        if not _sent_by_us(raw):
            continue
        message = SentMessage.from_provider(raw)
        if message.sent_at_epoch <= cutoff_epoch:
            continue
        parsed.append(message)
    if skipped:
        logger.warning("Skipped malformed provider entries", count=skipped)
    parsed.sort(key=lambda m: m.sent_at_epoch, reverse=True)
    return parsed[:limit]


class EvolutionMessageSource(MessageSource):
    """MessageSource backed by an Evolution API v2 instance."""

    def __init__(self, settings: EvolutionSettings, *, max_attempts: int | None = None):
        self.settings = settings
        self.max_attempts = int(max_attempts or BACKOFF_POLICY["max_attempts"])
        self.logger = get_logger("integration.evolution")

    def _url(self, path: str) -> str:
        return f"{self.settings.base_url}/{path}/{quote(self.settings.instance_name, safe='')}"

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Tuple[int, Any]:
        """Single HTTP call. Returns (status, decoded body)."""
        timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
        headers = {"apikey": self.settings.api_key, "Content-Type": "application/json"}
        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async with session.request(method, self._url(path), json=payload) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = await response.text()
                return response.status, data

    async def _request_with_retry(self, method: str, path: str, payload: Optional[dict] = None) -> Tuple[int, Any]:
        attempts = 0
        while True:
            attempts += 1
            try:
                status, data = await self._request(method, path, payload)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                reason = str(exc) or exc.__class__.__name__
                if attempts >= self.max_attempts:
                    raise EvolutionAPIError(reason) from exc
                error_code = "network_error"
            else:
                if not _is_transient(status) or attempts >= self.max_attempts:
                    return status, data
                error_code = f"http_{status}"

            backoff = compute_backoff_seconds(attempts)
            self.logger.warning(
                "Evolution API retry scheduled",
                path=path,
                attempt=attempts,
                backoff_seconds=round(backoff, 2),
                error_code=error_code,
            )
            await asyncio.sleep(backoff)

    async def fetch_instance_connectivity(self) -> ConnectivityOutcome:
        if not self.settings.is_configured:
            return ConnectivityOutcome(ok=False, error=NOT_CONFIGURED_REASON)
        try:
            status, data = await self._request_with_retry("GET", "instance/connectionState")
        except EvolutionAPIError as exc:
            self.logger.warning("Evolution instance check failed", error=str(exc))
            return ConnectivityOutcome(ok=False, error=str(exc))

        if status != 200:
            return ConnectivityOutcome(ok=False, error=f"HTTP {status}")
        state = None
        if isinstance(data, Mapping):
            instance = data.get("instance")
            if isinstance(instance, Mapping):
                state = instance.get("state")
            state = state or data.get("state")
        state = str(state) if state else "unknown"
        return ConnectivityOutcome(ok=state == EVOLUTION_SETTINGS["connected_state"], state=state)

    async def fetch_sent_messages(
        self,
        lookback_days: int,
        limit: int,
        *,
        now: datetime | None = None,
    ) -> MessageFetchOutcome:
        if not self.settings.is_configured:
            return MessageFetchOutcome.failed(NOT_CONFIGURED_REASON)

        current = now or utc_now()
        cutoff = math.floor(current.timestamp()) - lookback_days * SECONDS_PER_DAY
        body = {
            "where": {
                "key": {"fromMe": True},
                "messageTimestamp": {"gt": cutoff},
            },
            "limit": limit,
        }
        try:
            status, data = await self._request_with_retry("POST", "chat/findMessages", body)
        except EvolutionAPIError as exc:
            self.logger.warning("Evolution message fetch failed", error=str(exc))
            return MessageFetchOutcome.failed(str(exc))

        if status != 200:
            self.logger.warning("Evolution message fetch rejected", status_code=status)
            return MessageFetchOutcome.failed(f"Evolution API responded with status {status}")

        messages = parse_sent_messages(extract_message_list(data), cutoff_epoch=cutoff, limit=limit)
        self.logger.info("Fetched sent messages", count=len(messages), cutoff_epoch=cutoff)
        return MessageFetchOutcome(ok=True, messages=messages)


__all__ = [
    "EvolutionMessageSource",
    "EvolutionAPIError",
    "NOT_CONFIGURED_REASON",
    "extract_message_list",
    "parse_sent_messages",
]
