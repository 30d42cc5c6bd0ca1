"""Reconciliation engine orchestrator.

Single public coroutine `run_reconciliation(sales_source, message_source, settings)`:
1. Fetches sales, provider instance state and sent messages concurrently;
   classification waits for all three.
2. A sales failure aborts the run (SalesSourceError). A provider failure only
   degrades it: classification proceeds against an empty index and the
   report's `messages_available` flag is False.
3. Indexes messages by phone, classifies every sale, assembles the report.

Nothing is written back to either source; re-running on unchanged data gives
the same category counts.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

from delivery_audit.config import AuditSettings
from delivery_audit.exceptions import AuditError, SalesSourceError
from delivery_audit.integrations.base import (
    ConnectivityOutcome,
    MessageFetchOutcome,
    MessageSource,
    SalesSource,
)
from delivery_audit.models.records import SaleRecord
from delivery_audit.models.schemas.report import ReconciliationReport, RunConfig
from delivery_audit.services.delivery_classifier import classify
from delivery_audit.services.message_index import MessageIndex
from delivery_audit.services.phone_matching import PhoneMatcher, get_phone_matcher
from delivery_audit.services.report_assembler import assemble
from delivery_audit.utils import get_logger, log_audit_event, log_performance
from delivery_audit.utils.time import format_elapsed, isoformat_utc, utc_now

logger = get_logger(__name__)


async def _fetch_sales(source: SalesSource) -> list[SaleRecord]:
    try:
        return await source.fetch_all_sales()
    except AuditError:
        raise
    except Exception as exc:  # unknown source failure is still fatal
        raise SalesSourceError(f"Could not fetch sales: {exc}") from exc


async def _fetch_messages(source: MessageSource, lookback_days: int, limit: int) -> MessageFetchOutcome:
    try:
        return await source.fetch_sent_messages(lookback_days, limit)
    except Exception as exc:  # provider trouble degrades the run, never aborts it
        logger.warning("Message source raised, continuing without messages", error=str(exc))
        return MessageFetchOutcome.failed(str(exc) or exc.__class__.__name__)


async def _fetch_connectivity(source: MessageSource) -> ConnectivityOutcome:
    try:
        return await source.fetch_instance_connectivity()
    except Exception as exc:  # informational only
        logger.warning("Connectivity check raised", error=str(exc))
        return ConnectivityOutcome(ok=False, error=str(exc) or exc.__class__.__name__)


async def run_reconciliation(
    sales_source: SalesSource,
    message_source: MessageSource,
    settings: AuditSettings,
    *,
    matcher: Optional[PhoneMatcher] = None,
    now: Optional[datetime] = None,
) -> ReconciliationReport:
    """Run one point-in-time reconciliation and return the report."""
    started = utc_now()
    matcher = matcher or get_phone_matcher(settings.phone_match_strategy)

    sales, connectivity, message_fetch = await asyncio.gather(
        _fetch_sales(sales_source),
        _fetch_connectivity(message_source),
        _fetch_messages(message_source, settings.lookback_days, settings.message_fetch_limit),
    )

    if connectivity.ok:
        logger.info("Provider instance connected", state=connectivity.state)
    else:
        logger.warning("Provider instance not connected", state=connectivity.state, error=connectivity.error)
    if not message_fetch.ok:
        logger.warning(
            "Sent messages unavailable; negative matches are unreliable",
            error=message_fetch.error,
        )

    index = MessageIndex.build(message_fetch.messages) if message_fetch.ok else MessageIndex.empty()
    classified = [
        classify(sale, index, matcher=matcher, lookback_days=settings.lookback_days)
        for sale in sales
    ]

    report = assemble(
        sales,
        classified,
        run_config=RunConfig(
            lookback_days=settings.lookback_days,
            message_fetch_limit=settings.message_fetch_limit,
            provider_instance=settings.provider_instance_label,
        ),
        connectivity=connectivity,
        message_fetch=message_fetch,
        generated_at=isoformat_utc(now or utc_now()),
    )

    finished = utc_now()
    log_audit_event(
        "reconciliation_completed",
        {
            **report.summary.model_dump(),
            "messages_available": report.messages_available,
            "matcher": matcher.name,
            "elapsed": format_elapsed(started, finished),
        },
    )
    log_performance(
        "reconciliation",
        (finished - started).total_seconds() * 1000,
        {"sales": len(sales), "messages": len(index)},
    )
    return report


__all__ = ["run_reconciliation"]
