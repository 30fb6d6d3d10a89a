"""
Trust Errors
============

Exceptions raised by trust providers and the trust store.
"""


class TrustError(Exception):
    """Base class for trust layer errors."""


class MessageFormatError(TrustError):
    """Payload is not a well-formed signed message."""


class ConfigurationError(TrustError):
    """Scheme material could not be loaded or parsed."""


class SchemeDownloadError(ConfigurationError):
    """Default schemes could not be fetched from their remote source."""


class SchemeUpdateError(ConfigurationError):
    """A refresh of the scheme material failed."""


class TrustStoreInitializationError(TrustError):
    """No usable trust configuration could be established at startup."""


class TrustStoreNotReadyError(TrustError):
    """The trust store has not published a configuration yet."""
