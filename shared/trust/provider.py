"""
Trust Provider Interface
========================

Abstract base class for the external trust-verification library.

The gateway and trust store only talk to this interface: deserialize a
signed message, verify it against a configuration snapshot, and manage
the configuration lifecycle.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from shared.config import settings, TrustMode
from shared.logging import get_logger
from shared.trust.exceptions import MessageFormatError
from shared.trust.models import SignedMessage, TrustConfiguration, VerificationOutcome

logger = get_logger(__name__)


class TrustProvider(ABC):
    """
    Abstract base class for trust providers.

    Implements the Strategy pattern for different trust backends.
    """

    @property
    @abstractmethod
    def mode(self) -> TrustMode:
        """Get the provider mode."""
        ...

    def parse_message(self, payload: bytes) -> SignedMessage:
        """
        Deserialize a signed message from its JSON wire format.

        Args:
            payload: Raw request body

        Returns:
            Parsed SignedMessage

        Raises:
            MessageFormatError: If the payload is not valid JSON or does
                not match the message schema
        """
        try:
            return SignedMessage.model_validate_json(payload)
        except ValidationError as e:
            raise MessageFormatError(str(e)) from e

    @abstractmethod
    async def verify(
        self,
        message: SignedMessage,
        configuration: TrustConfiguration,
        policy: Any | None = None,
    ) -> VerificationOutcome:
        """
        Verify a signed message against a configuration snapshot.

        Args:
            message: The message to verify
            configuration: Snapshot used for the whole call
            policy: Optional disclosure policy; None uses the library default

        Returns:
            VerificationOutcome; library failures are reported as ERROR
            outcomes rather than raised
        """
        ...

    @abstractmethod
    async def load_configuration(self, path: Path) -> TrustConfiguration:
        """
        Load scheme material from a storage location.

        Args:
            path: Scheme storage directory

        Returns:
            Snapshot of the schemes found (possibly empty)

        Raises:
            ConfigurationError: If the location cannot be read or parsed
        """
        ...

    @abstractmethod
    async def download_default_schemes(self, path: Path) -> None:
        """
        Fetch the default baseline schemes into a storage location.

        Raises:
            SchemeDownloadError: If the download fails
        """
        ...

    @abstractmethod
    async def refresh_configuration(
        self,
        current: TrustConfiguration,
    ) -> TrustConfiguration:
        """
        Build a new snapshot with updated scheme material.

        The current snapshot must stay usable while and after this runs.

        Raises:
            SchemeUpdateError: If the update fails
        """
        ...


# Global provider instance
_provider: TrustProvider | None = None


def get_trust_provider() -> TrustProvider:
    """
    Get the configured trust provider instance.

    Returns:
        TrustProvider instance based on settings
    """
    global _provider

    if _provider is None:
        mode = settings.trust.mode

        if mode == TrustMode.MOCK:
            from shared.trust.mock import MockTrustProvider

            _provider = MockTrustProvider()
        elif mode == TrustMode.IRMA:
            from shared.trust.irma import IrmaTrustProvider

            _provider = IrmaTrustProvider()
        else:
            raise ValueError(f"Unknown trust mode: {mode}")

        logger.info(
            "trust_provider_initialized",
            mode=mode.value,
        )

    return _provider


def set_trust_provider(provider: TrustProvider) -> None:
    """
    Set a custom trust provider.

    Args:
        provider: TrustProvider instance
    """
    global _provider
    _provider = provider
    logger.info(
        "trust_provider_set",
        mode=provider.mode.value,
    )


def reset_trust_provider() -> None:
    """Reset the provider to be re-initialized."""
    global _provider
    _provider = None
