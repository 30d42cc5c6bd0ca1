"""Pytest fixtures and factories.

Sources are in-memory fakes implementing the integration interfaces, so the
engine and CLI run end to end without Firestore or the Evolution API.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

# Ensure project root on sys.path so 'delivery_audit' resolves without installation
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from delivery_audit.config import AuditSettings, EvolutionSettings  # noqa: E402
from delivery_audit.exceptions import SalesSourceError  # noqa: E402
from delivery_audit.integrations.base import (  # noqa: E402
    ConnectivityOutcome,
    MessageFetchOutcome,
    MessageSource,
    SalesSource,
)
from delivery_audit.models.enums import DeliveryStatus, ProviderStatus  # noqa: E402
from delivery_audit.models.records import CustomerRecord, SaleRecord, SentMessage  # noqa: E402

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
RECENT_EPOCH = int(NOW.timestamp()) - 3600


class FakeSalesSource(SalesSource):
    def __init__(self, sales: Iterable[SaleRecord] = (), customers: Iterable[CustomerRecord] = (), *, error: Optional[Exception] = None):
        self.sales = list(sales)
        self.customers = list(customers)
        self.error = error
        self.calls = 0

    async def fetch_all_sales(self) -> List[SaleRecord]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.sales)

    async def fetch_all_customers(self) -> List[CustomerRecord]:
        if self.error:
            raise self.error
        return list(self.customers)


class FakeMessageSource(MessageSource):
    def __init__(
        self,
        messages: Iterable[SentMessage] = (),
        *,
        ok: bool = True,
        error: Optional[str] = None,
        connected: bool = True,
        raise_on_fetch: Optional[Exception] = None,
    ):
        self.messages = list(messages)
        self.ok = ok
        self.error = error
        self.connected = connected
        self.raise_on_fetch = raise_on_fetch
        self.requested: list[tuple[int, int]] = []

    async def fetch_sent_messages(self, lookback_days: int, limit: int) -> MessageFetchOutcome:
        self.requested.append((lookback_days, limit))
        if self.raise_on_fetch:
            raise self.raise_on_fetch
        if not self.ok:
            return MessageFetchOutcome.failed(self.error or "provider unavailable")
        return MessageFetchOutcome(ok=True, messages=list(self.messages))

    async def fetch_instance_connectivity(self) -> ConnectivityOutcome:
        if self.connected:
            return ConnectivityOutcome(ok=True, state="open")
        return ConnectivityOutcome(ok=False, state="close", error="instance closed")


@pytest.fixture()
def make_sale():
    counter = {"n": 0}

    def _make(
        status: DeliveryStatus = DeliveryStatus.PENDING,
        phone: str = "+5553994242183",
        *,
        sale_id: Optional[str] = None,
        name: Optional[str] = "Maria Silva",
        attempts: int = 0,
        customer_id: Optional[str] = "cli-1",
    ) -> SaleRecord:
        counter["n"] += 1
        return SaleRecord(
            sale_id=sale_id or f"sale-{counter['n']}",
            customer_id=customer_id,
            customer_name=name,
            customer_phone=phone,
            delivery_status=status,
            attempt_count=attempts,
            sale_date="2025-03-01T15:00:00+00:00",
        )

    return _make


@pytest.fixture()
def make_message():
    counter = {"n": 0}

    def _make(
        phone: str = "5553994242183",
        *,
        epoch: int = RECENT_EPOCH,
        status: Optional[ProviderStatus] = ProviderStatus.SERVER_ACK,
        text: str = "Olá! Obrigada pela compra.",
    ) -> SentMessage:
        counter["n"] += 1
        return SentMessage(
            message_id=f"MSG{counter['n']}",
            recipient_phone=phone,
            provider_status=status,
            sent_at_epoch=epoch,
            excerpt=text,
            raw_status=int(status) if status is not None else None,
        )

    return _make


@pytest.fixture()
def settings(tmp_path) -> AuditSettings:
    return AuditSettings(
        lookback_days=30,
        message_fetch_limit=500,
        evolution=EvolutionSettings(
            base_url="https://evo.example.com",
            api_key="secret",
            instance_name="Test Store",
        ),
        report_path=tmp_path / "delivery-audit-report.json",
        phone_report_path=tmp_path / "phone-audit-report.json",
    )


@pytest.fixture()
def failing_sales_source() -> FakeSalesSource:
    return FakeSalesSource(error=SalesSourceError("Firestore unreachable"))
