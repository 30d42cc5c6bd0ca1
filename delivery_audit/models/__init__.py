"""Domain models: enums, input records and report schemas."""
from .enums import DeliveryStatus, ProviderStatus, ReconciliationCategory, PhoneClassification
from .records import CustomerRecord, SaleRecord, SentMessage

__all__ = [
    "DeliveryStatus",
    "ProviderStatus",
    "ReconciliationCategory",
    "PhoneClassification",
    "CustomerRecord",
    "SaleRecord",
    "SentMessage",
]
