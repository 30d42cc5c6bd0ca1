"""Exception hierarchy for the delivery audit."""


class AuditError(Exception):
    """Base exception for errors that stop an audit run."""


class ConfigurationError(AuditError):
    """Settings are missing or malformed."""


class SalesSourceError(AuditError):
    """The record store could not be reached or sales could not be fetched."""


__all__ = ["AuditError", "ConfigurationError", "SalesSourceError"]
