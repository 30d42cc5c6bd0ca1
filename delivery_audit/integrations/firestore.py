"""
Firestore sales source.

Reads the sales and customers collections (concurrently) and joins each sale
to its customer in memory. Strictly read-only. The client is built from the
explicit settings object, or injected directly (tests, scripts sharing one).
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from google.cloud import firestore
from google.oauth2 import service_account

from delivery_audit.config import AuditSettings, FirestoreCredentials
from delivery_audit.exceptions import AuditError, ConfigurationError, SalesSourceError
from delivery_audit.integrations.base import SalesSource
from delivery_audit.models.records import CustomerRecord, SaleRecord
from delivery_audit.utils import get_logger

logger = get_logger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def build_firestore_client(credentials: FirestoreCredentials) -> firestore.AsyncClient:
    if not credentials.is_complete:
        raise ConfigurationError(
            "Firestore credentials not found. Set FIREBASE_ADMIN_PROJECT_ID, "
            "FIREBASE_ADMIN_CLIENT_EMAIL and FIREBASE_ADMIN_PRIVATE_KEY."
        )
    info = {
        "type": "service_account",
        "project_id": credentials.project_id,
        "client_email": credentials.client_email,
        "private_key": credentials.private_key,
        "token_uri": GOOGLE_TOKEN_URI,
    }
    try:
        creds = service_account.Credentials.from_service_account_info(info)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid Firestore service account credentials: {exc}") from exc
    return firestore.AsyncClient(project=credentials.project_id, credentials=creds)


def join_sales(
    sale_docs: List[Tuple[str, Dict[str, Any]]],
    customer_docs: List[Tuple[str, Dict[str, Any]]],
) -> List[SaleRecord]:
    customers = {doc_id: CustomerRecord.from_firestore(doc_id, data) for doc_id, data in customer_docs}
    sales: List[SaleRecord] = []
    orphaned = 0
    for doc_id, data in sale_docs:
        customer_id = data.get("clienteId")
        customer = customers.get(str(customer_id)) if customer_id else None
        if customer is None:
            orphaned += 1
        sales.append(SaleRecord.from_firestore(doc_id, data, customer))
    if orphaned:
        logger.warning("Sales without a linked customer", count=orphaned)
    return sales


class FirestoreSalesSource(SalesSource):
    def __init__(self, settings: AuditSettings, *, client: Optional[Any] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = build_firestore_client(self.settings.firestore)
            logger.info("Firestore client ready", project=self.settings.firestore.project_id)
        return self._client

    async def _fetch_collection(self, name: str) -> List[Tuple[str, Dict[str, Any]]]:
        docs = await self.client.collection(name).get()
        return [(doc.id, doc.to_dict() or {}) for doc in docs]

    async def fetch_all_customers(self) -> List[CustomerRecord]:
        try:
            docs = await self._fetch_collection(self.settings.customers_collection)
        except AuditError:
            raise
        except Exception as exc:  # any store failure is fatal for the run
            raise SalesSourceError(f"Could not read customers from Firestore: {exc}") from exc
        return [CustomerRecord.from_firestore(doc_id, data) for doc_id, data in docs]

    async def fetch_all_sales(self) -> List[SaleRecord]:
        try:
            sale_docs, customer_docs = await asyncio.gather(
                self._fetch_collection(self.settings.sales_collection),
                self._fetch_collection(self.settings.customers_collection),
            )
        except AuditError:
            raise
        except Exception as exc:  # any store failure is fatal for the run
            raise SalesSourceError(f"Could not read sales from Firestore: {exc}") from exc
        sales = join_sales(sale_docs, customer_docs)
        logger.info("Fetched sales", count=len(sales), customers=len(customer_docs))
        return sales


__all__ = ["FirestoreSalesSource", "build_firestore_client", "join_sales"]
