"""
Input records consumed by the audit.

Both sources store loosely-shaped documents. Each record type decides its
fail-soft defaults once, in its `from_*` constructor, so business logic never
has to check for optional fields.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from delivery_audit.config import EVOLUTION_SETTINGS
from delivery_audit.models.enums import DeliveryStatus, ProviderStatus
from delivery_audit.utils import get_logger
from delivery_audit.utils.time import epoch_seconds, epoch_to_iso, to_iso_utc

logger = get_logger(__name__)

NO_TEXT = "(no text)"


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


def _as_epoch(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, Mapping):
        # protobuf Long serialized as {"low": ..., "high": ...}
        value = value.get("low")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if math.isnan(number):
        return 0
    return epoch_seconds(number)


@dataclass(frozen=True, slots=True)
class CustomerRecord:
    """A customer document: display name and phone in whatever format was stored."""

    customer_id: str
    name: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_firestore(cls, doc_id: str, data: Mapping[str, Any] | None) -> "CustomerRecord":
        data = data or {}
        phone = data.get("telefone")
        return cls(
            customer_id=str(doc_id),
            name=_as_text(data.get("nome")),
            phone=phone if isinstance(phone, str) else _as_text(phone),
        )


@dataclass(frozen=True, slots=True)
class SaleRecord:
    """
    Read-only view of a sale and the state of its follow-up message.

    The customer fields are denormalized from the linked customer document;
    they are None/empty when the sale has no customer or the link is broken.
    """

    sale_id: str
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: str = ""
    delivery_status: DeliveryStatus = DeliveryStatus.PENDING
    attempt_count: int = 0
    sale_date: Optional[str] = None
    sent_at: Optional[str] = None
    last_error: Optional[str] = None

    @classmethod
    def from_firestore(
        cls,
        doc_id: str,
        data: Mapping[str, Any] | None,
        customer: CustomerRecord | None = None,
    ) -> "SaleRecord":
        data = data or {}
        raw_status = data.get("status")
        status = DeliveryStatus.parse(raw_status)
        if status is None:
            logger.warning(
                "Unrecognized delivery status, treating as pending",
                sale_id=doc_id,
                status=str(raw_status),
            )
            status = DeliveryStatus.PENDING
        return cls(
            sale_id=str(doc_id),
            customer_id=_as_text(data.get("clienteId")),
            customer_name=customer.name if customer else None,
            customer_phone=(customer.phone or "") if customer else "",
            delivery_status=status,
            attempt_count=_as_count(data.get("tentativas")),
            sale_date=to_iso_utc(data.get("dataVenda")),
            sent_at=to_iso_utc(data.get("dataEnvio")),
            last_error=_as_text(data.get("erroEnvio")) or _as_text(data.get("erro")),
        )


@dataclass(frozen=True, slots=True)
class SentMessage:
    """An outbound WhatsApp message as recorded by the provider."""

    message_id: Optional[str]
    recipient_phone: str
    provider_status: Optional[ProviderStatus]
    sent_at_epoch: int
    excerpt: str = NO_TEXT
    raw_status: Any = None

    @property
    def status_label(self) -> str:
        if self.provider_status is not None:
            return self.provider_status.label
        return f"UNKNOWN({self.raw_status})"

    @property
    def sent_at_iso(self) -> Optional[str]:
        return epoch_to_iso(self.sent_at_epoch)

    @classmethod
    def from_provider(cls, raw: Mapping[str, Any]) -> "SentMessage":
        key = raw.get("key") if isinstance(raw.get("key"), Mapping) else {}
        remote_jid = key.get("remoteJid") or raw.get("remoteJid") or ""
        recipient = str(remote_jid).replace(str(EVOLUTION_SETTINGS["jid_suffix"]), "")
        raw_status = raw.get("status")
        return cls(
            message_id=_as_text(key.get("id") or raw.get("id")),
            recipient_phone=recipient,
            provider_status=ProviderStatus.parse(raw_status),
            sent_at_epoch=_as_epoch(raw.get("messageTimestamp") or raw.get("timestamp")),
            excerpt=_extract_text(raw.get("message")),
            raw_status=raw_status,
        )


def _extract_text(message: Any) -> str:
    if not isinstance(message, Mapping):
        return NO_TEXT
    extended = message.get("extendedTextMessage")
    image = message.get("imageMessage")
    candidates = (
        message.get("conversation"),
        extended.get("text") if isinstance(extended, Mapping) else None,
        image.get("caption") if isinstance(image, Mapping) else None,
    )
    for text in candidates:
        if isinstance(text, str) and text:
            return text
    return NO_TEXT


__all__ = ["CustomerRecord", "SaleRecord", "SentMessage", "NO_TEXT"]
