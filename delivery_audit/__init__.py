"""Delivery audit package.

Cross-references the store's sale records with the WhatsApp provider's sent
message log and reports where the two disagree. Read-only by construction.
"""

__version__ = "1.0.0"

__all__: list[str] = ["__version__"]
