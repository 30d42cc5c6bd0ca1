"""
Pydantic schemas for the reconciliation report.

The JSON written to disk is `ReconciliationReport.model_dump(mode="json")`;
field names here are the stable report shape.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from delivery_audit.config import RECONCILIATION_SETTINGS
from delivery_audit.models.enums import DeliveryStatus, ReconciliationCategory


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class SaleSummary(FrozenModel):
    """Snapshot of the sale fields relevant to delivery auditing."""
    sale_id: str
    customer_id: Optional[str] = None
    customer_name: str = Field(description="Linked customer's name, '(no customer)' when the link is missing")
    customer_phone: Optional[str] = None
    delivery_status: DeliveryStatus
    attempt_count: int = Field(ge=0)
    sale_date: Optional[str] = None
    sent_at: Optional[str] = None
    last_error: Optional[str] = None


class MessageSummary(FrozenModel):
    message_id: Optional[str] = None
    sent_at: Optional[str] = Field(None, description="Provider send time, ISO-8601 UTC")
    status_label: str
    excerpt: str


class ClassifiedRecord(FrozenModel):
    sale: SaleSummary
    category: ReconciliationCategory
    messages: List[MessageSummary] = Field(default_factory=list, description="Most recent matched provider messages first")
    diagnostic: str

    @property
    def has_match(self) -> bool:
        return bool(self.messages)


class RunConfig(FrozenModel):
    lookback_days: int
    message_fetch_limit: int
    provider_instance: str


class ProviderInstanceStatus(FrozenModel):
    connected: bool
    state: Optional[str] = None
    error: Optional[str] = None


class MessageFetchStatus(FrozenModel):
    available: bool
    fetched_count: int = 0
    error: Optional[str] = None


class ReportSummary(FrozenModel):
    total_sales: int
    wa_sent_but_unconfirmed: int = 0
    firestore_confirmed_but_unverified: int = 0
    confirmed_both: int = 0
    genuinely_pending_or_error: int = 0
    anomalous: int = 0

    @property
    def classified_total(self) -> int:
        return (
            self.wa_sent_but_unconfirmed
            + self.firestore_confirmed_but_unverified
            + self.confirmed_both
            + self.genuinely_pending_or_error
            + self.anomalous
        )


class ReconciliationReport(FrozenModel):
    """Point-in-time result of one reconciliation run.

    Consumers must check `messages_available` before trusting the
    negative-match categories: when the provider could not be read, every
    sale looks unmatched.
    """
    schema_version: int = RECONCILIATION_SETTINGS["report_schema_version"]
    generated_at: str
    config: RunConfig
    provider_instance: ProviderInstanceStatus
    messages: MessageFetchStatus
    summary: ReportSummary
    wa_sent_but_unconfirmed: List[ClassifiedRecord] = Field(default_factory=list)
    firestore_confirmed_but_unverified: List[ClassifiedRecord] = Field(default_factory=list)
    confirmed_both: List[ClassifiedRecord] = Field(default_factory=list)
    genuinely_pending_or_error: List[ClassifiedRecord] = Field(default_factory=list)
    anomalous: List[ClassifiedRecord] = Field(default_factory=list)

    @property
    def messages_available(self) -> bool:
        return self.messages.available

    def records_for(self, category: ReconciliationCategory) -> List[ClassifiedRecord]:
        return getattr(self, category.value)
