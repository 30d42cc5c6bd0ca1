"""Delivery status classification logic.

Inputs are one sale (the store's own view of its follow-up message) and the
index of messages the provider actually sent. Whether a matching message
exists is combined with the sale's recorded status to assign one category:

    match  + pending        -> WA_SENT_BUT_UNCONFIRMED
    !match + sent           -> FIRESTORE_CONFIRMED_BUT_UNVERIFIED
    match  + sent           -> CONFIRMED_BOTH
    !match + pending|error  -> GENUINELY_PENDING_OR_ERROR
    anything else           -> ANOMALOUS (error|duplicate with a match, duplicate without)

Classification never raises for malformed records; an absent or unusable
phone simply yields no match.
"""
from __future__ import annotations

from typing import Optional

from delivery_audit.config import RECONCILIATION_SETTINGS
from delivery_audit.models.enums import DeliveryStatus, ReconciliationCategory
from delivery_audit.models.records import SaleRecord, SentMessage
from delivery_audit.models.schemas.report import ClassifiedRecord, MessageSummary, SaleSummary
from delivery_audit.services.message_index import MessageIndex
from delivery_audit.services.phone_matching import PhoneMatcher, digits_only

NO_CUSTOMER = "(no customer)"


def truncate_excerpt(text: str, max_chars: int | None = None) -> str:
    limit = int(max_chars if max_chars is not None else RECONCILIATION_SETTINGS["excerpt_max_chars"])
    if len(text) <= limit:
        return text
    return text[:limit] + "…"


def summarize_sale(sale: SaleRecord) -> SaleSummary:
    return SaleSummary(
        sale_id=sale.sale_id,
        customer_id=sale.customer_id,
        customer_name=sale.customer_name or NO_CUSTOMER,
        customer_phone=sale.customer_phone or None,
        delivery_status=sale.delivery_status,
        attempt_count=sale.attempt_count,
        sale_date=sale.sale_date,
        sent_at=sale.sent_at,
        last_error=sale.last_error,
    )


def summarize_message(message: SentMessage) -> MessageSummary:
    return MessageSummary(
        message_id=message.message_id,
        sent_at=message.sent_at_iso,
        status_label=message.status_label,
        excerpt=truncate_excerpt(message.excerpt),
    )


def _decide(
    has_match: bool,
    status: DeliveryStatus,
    lookback_days: int,
) -> tuple[ReconciliationCategory, str]:
    if has_match and status == DeliveryStatus.PENDING:
        return (
            ReconciliationCategory.WA_SENT_BUT_UNCONFIRMED,
            "WhatsApp sent the message but the sale is still 'pending': the automation "
            "failed to write the status back, and this sale will likely be sent again.",
        )
    if not has_match and status == DeliveryStatus.SENT:
        return (
            ReconciliationCategory.FIRESTORE_CONFIRMED_BUT_UNVERIFIED,
            f"Sale is marked 'sent' but no provider message was found in the last {lookback_days} "
            "days. The message may be older than the lookback window, or the record is inconsistent.",
        )
    if has_match and status == DeliveryStatus.SENT:
        return (
            ReconciliationCategory.CONFIRMED_BOTH,
            "Confirmed: sent on WhatsApp and marked 'sent' on the sale.",
        )
    if not has_match and status == DeliveryStatus.ERROR:
        return (
            ReconciliationCategory.GENUINELY_PENDING_OR_ERROR,
            "Delivery attempts exhausted. No WhatsApp message found.",
        )
    if not has_match and status == DeliveryStatus.PENDING:
        return (
            ReconciliationCategory.GENUINELY_PENDING_OR_ERROR,
            "Awaiting send. No WhatsApp message found.",
        )
    if has_match:
        return (
            ReconciliationCategory.ANOMALOUS,
            f"Sale is marked '{status.value}' yet a WhatsApp message reached this number; "
            "check whether the customer was messaged more than once.",
        )
    return (
        ReconciliationCategory.ANOMALOUS,
        f"Sale is marked '{status.value}' and no WhatsApp message was found; "
        "no outcome is defined for this combination.",
    )


def classify(
    sale: SaleRecord,
    index: MessageIndex,
    *,
    matcher: Optional[PhoneMatcher] = None,
    lookback_days: int | None = None,
    max_messages: int | None = None,
) -> ClassifiedRecord:
    """Core classification algorithm for a single sale."""
    lookback = int(lookback_days if lookback_days is not None else RECONCILIATION_SETTINGS["lookback_days"])
    keep = int(max_messages if max_messages is not None else RECONCILIATION_SETTINGS["max_attached_messages"])

    tel = digits_only(sale.customer_phone)
    matched = index.lookup(tel, matcher) if tel else []
    category, diagnostic = _decide(bool(matched), sale.delivery_status, lookback)

    return ClassifiedRecord(
        sale=summarize_sale(sale),
        category=category,
        messages=[summarize_message(m) for m in matched[:keep]],
        diagnostic=diagnostic,
    )


__all__ = ["classify", "summarize_sale", "summarize_message", "truncate_excerpt", "NO_CUSTOMER"]
