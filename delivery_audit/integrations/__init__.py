"""
Integrations package initialization.
Exports the record-source interfaces and their concrete implementations.
"""
from .base import ConnectivityOutcome, MessageFetchOutcome, MessageSource, SalesSource
from .evolution import EvolutionMessageSource
from .firestore import FirestoreSalesSource

__all__ = [
    "ConnectivityOutcome",
    "MessageFetchOutcome",
    "MessageSource",
    "SalesSource",
    "EvolutionMessageSource",
    "FirestoreSalesSource",
]
