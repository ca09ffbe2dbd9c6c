"""Custom exception hierarchy for the repository gateway."""


class ProxyError(Exception):
    """Base exception for all gateway errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class InvalidTargetError(ProxyError):
    """Raised when a resolved target URL has no host to forward to."""
