"""
Pydantic schemas package.
Exports the report shapes written by the audit commands.
"""

from .report import (
    SaleSummary,
    MessageSummary,
    ClassifiedRecord,
    RunConfig,
    ProviderInstanceStatus,
    MessageFetchStatus,
    ReportSummary,
    ReconciliationReport,
)
from .phones import (
    PhoneCheck,
    PhoneIssue,
    PhoneAuditSummary,
    PhoneAuditReport,
)

__all__ = [
    "SaleSummary",
    "MessageSummary",
    "ClassifiedRecord",
    "RunConfig",
    "ProviderInstanceStatus",
    "MessageFetchStatus",
    "ReportSummary",
    "ReconciliationReport",
    "PhoneCheck",
    "PhoneIssue",
    "PhoneAuditSummary",
    "PhoneAuditReport",
]
