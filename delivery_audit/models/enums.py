"""Central Enum definitions for audit domain states.

These replace scattered string literals so the deserialization boundary,
classifier and report schemas agree on one vocabulary.
"""
from __future__ import annotations

import enum
from typing import Any, Optional


class DeliveryStatus(str, enum.Enum):
    """The store's own last-known status for a sale's follow-up message."""

    PENDING = "pending"
    SENT = "sent"
    ERROR = "error"
    DUPLICATE = "duplicate"

    @classmethod
    def parse(cls, value: Any) -> Optional["DeliveryStatus"]:
        """Map a stored status (Portuguese or English) to a member.

        Absent values map to PENDING; unrecognized values return None so the
        caller can decide how loudly to complain.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.PENDING
        if isinstance(value, cls):
            return value
        return _STORED_STATUS.get(str(value).strip().lower())


_STORED_STATUS: dict[str, DeliveryStatus] = {
    "pendente": DeliveryStatus.PENDING,
    "enviado": DeliveryStatus.SENT,
    "erro": DeliveryStatus.ERROR,
    "duplicado": DeliveryStatus.DUPLICATE,
    **{member.value: member for member in DeliveryStatus},
}


class ProviderStatus(enum.IntEnum):
    """WhatsApp acknowledgement level reported by the messaging provider."""

    ERROR = 0
    PENDING = 1
    SERVER_ACK = 2
    DELIVERY_ACK = 3
    READ = 4
    PLAYED = 5

    @property
    def label(self) -> str:
        return _PROVIDER_LABELS[self]

    @classmethod
    def parse(cls, value: Any) -> Optional["ProviderStatus"]:
        """Accept integer codes, numeric strings and Evolution v2 names."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return cls(value) if value in cls._value2member_map_ else None
        if isinstance(value, str):
            text = value.strip().upper()
            if text.isdigit():
                return cls.parse(int(text))
            return cls.__members__.get(text)
        return None

    @classmethod
    def label_for(cls, value: Any) -> str:
        status = cls.parse(value)
        return status.label if status is not None else f"UNKNOWN({value})"


_PROVIDER_LABELS: dict[ProviderStatus, str] = {
    ProviderStatus.ERROR: "ERROR",
    ProviderStatus.PENDING: "QUEUED",
    ProviderStatus.SERVER_ACK: "REACHED_SERVER",
    ProviderStatus.DELIVERY_ACK: "DELIVERED_TO_DEVICE",
    ProviderStatus.READ: "READ",
    ProviderStatus.PLAYED: "PLAYED",
}


class ReconciliationCategory(str, enum.Enum):
    WA_SENT_BUT_UNCONFIRMED = "wa_sent_but_unconfirmed"
    FIRESTORE_CONFIRMED_BUT_UNVERIFIED = "firestore_confirmed_but_unverified"
    CONFIRMED_BOTH = "confirmed_both"
    GENUINELY_PENDING_OR_ERROR = "genuinely_pending_or_error"
    # Status/match combinations outside the decision table
    ANOMALOUS = "anomalous"


class PhoneClassification(str, enum.Enum):
    VALID = "valid"
    INVALID = "invalid"
    MISSING = "missing"


__all__ = [
    "DeliveryStatus",
    "ProviderStatus",
    "ReconciliationCategory",
    "PhoneClassification",
]
