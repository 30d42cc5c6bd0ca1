"""Aggregation of classified sales into the reconciliation report.

Pure: takes everything it needs as arguments, touches no I/O. Writing the
report anywhere is `report_export`'s job.
"""
from __future__ import annotations

from typing import Sequence

from delivery_audit.integrations.base import ConnectivityOutcome, MessageFetchOutcome
from delivery_audit.models.enums import ReconciliationCategory
from delivery_audit.models.records import SaleRecord
from delivery_audit.models.schemas.report import (
    ClassifiedRecord,
    MessageFetchStatus,
    ProviderInstanceStatus,
    ReconciliationReport,
    ReportSummary,
    RunConfig,
)


def assemble(
    sales: Sequence[SaleRecord],
    classified: Sequence[ClassifiedRecord],
    *,
    run_config: RunConfig,
    connectivity: ConnectivityOutcome,
    message_fetch: MessageFetchOutcome,
    generated_at: str,
) -> ReconciliationReport:
    buckets: dict[ReconciliationCategory, list[ClassifiedRecord]] = {
        category: [] for category in ReconciliationCategory
    }
    for record in classified:
        buckets[record.category].append(record)

    summary = ReportSummary(
        total_sales=len(sales),
        **{category.value: len(records) for category, records in buckets.items()},
    )

    return ReconciliationReport(
        generated_at=generated_at,
        config=run_config,
        provider_instance=ProviderInstanceStatus(
            connected=connectivity.ok,
            state=connectivity.state,
            error=connectivity.error,
        ),
        messages=MessageFetchStatus(
            available=message_fetch.ok,
            fetched_count=len(message_fetch.messages),
            error=message_fetch.error,
        ),
        summary=summary,
        **{category.value: records for category, records in buckets.items()},
    )


__all__ = ["assemble"]
