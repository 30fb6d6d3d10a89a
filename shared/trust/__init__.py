"""
Trust Module
============

Abstraction layer over the external trust-verification library.

Supports:
- IRMA (irmago CLI and verification helper)
- Mock (development/testing)

Usage:
    from shared.trust import TrustStore, get_trust_provider

    store = TrustStore(get_trust_provider(), settings.trust.schemes_dir)
    await store.initialize()
    store.start_auto_refresh(settings.trust.update_interval_minutes)

    message = store.provider.parse_message(body)
    outcome = await store.provider.verify(message, store.current_configuration())
"""

from shared.trust.exceptions import (
    ConfigurationError,
    MessageFormatError,
    SchemeDownloadError,
    SchemeUpdateError,
    TrustError,
    TrustStoreInitializationError,
    TrustStoreNotReadyError,
)
from shared.trust.mock import MockTrustProvider
from shared.trust.models import (
    AttributeList,
    DisclosedAttribute,
    OutcomeKind,
    ProofStatus,
    SchemeInfo,
    SignedMessage,
    TrustConfiguration,
    VerificationOutcome,
)
from shared.trust.provider import (
    TrustProvider,
    get_trust_provider,
    reset_trust_provider,
    set_trust_provider,
)
from shared.trust.store import TrustStore

__all__ = [
    # Provider
    "TrustProvider",
    "get_trust_provider",
    "set_trust_provider",
    "reset_trust_provider",
    "MockTrustProvider",
    # Store
    "TrustStore",
    # Models
    "AttributeList",
    "DisclosedAttribute",
    "OutcomeKind",
    "ProofStatus",
    "SchemeInfo",
    "SignedMessage",
    "TrustConfiguration",
    "VerificationOutcome",
    # Errors
    "TrustError",
    "MessageFormatError",
    "ConfigurationError",
    "SchemeDownloadError",
    "SchemeUpdateError",
    "TrustStoreInitializationError",
    "TrustStoreNotReadyError",
]
