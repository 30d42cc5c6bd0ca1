"""Record-source interfaces the audit consumes.

The engine only sees these; concrete sources (Firestore, Evolution API, test
fakes) are handed in by the caller.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from delivery_audit.models.records import CustomerRecord, SaleRecord, SentMessage


@dataclass(frozen=True)
class MessageFetchOutcome:
    ok: bool
    messages: List[SentMessage] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> "MessageFetchOutcome":
        return cls(ok=False, messages=[], error=error)


@dataclass(frozen=True)
class ConnectivityOutcome:
    ok: bool
    state: Optional[str] = None
    error: Optional[str] = None


class SalesSource(ABC):
    @abstractmethod
    async def fetch_all_sales(self) -> List[SaleRecord]:
        """Every sale, with customer name/phone already joined in.

        Raises SalesSourceError when the store cannot be read.
        """

    @abstractmethod
    async def fetch_all_customers(self) -> List[CustomerRecord]:
        """Every customer document."""


class MessageSource(ABC):
    @abstractmethod
    async def fetch_sent_messages(self, lookback_days: int, limit: int) -> MessageFetchOutcome:
        """Outbound messages sent within the lookback window, at most `limit`.

        Failures are reported in the outcome, not raised.
        """

    @abstractmethod
    async def fetch_instance_connectivity(self) -> ConnectivityOutcome:
        """Informational connection state of the provider instance."""
