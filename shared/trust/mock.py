"""
Mock Trust Provider
===================

In-memory mock implementation for development and testing.

Version: 0.1.0
"""

import asyncio
from collections import deque
from pathlib import Path
from typing import Any

from shared.config import TrustMode
from shared.logging import get_logger
from shared.trust.exceptions import SchemeDownloadError, SchemeUpdateError
from shared.trust.models import (
    AttributeList,
    ProofStatus,
    SchemeInfo,
    SignedMessage,
    TrustConfiguration,
    VerificationOutcome,
)
from shared.trust.provider import TrustProvider

logger = get_logger(__name__)

DEFAULT_MOCK_SCHEMES = ("irma-demo", "pbdf")

# Most recent verifications kept for inspection
VERIFIED_HISTORY = 1000


class MockTrustProvider(TrustProvider):
    """
    In-memory mock trust provider.

    Messages are verified by looking up their `message` text in a
    registry of canned outcomes; unregistered messages are INVALID.
    Scheme storage is simulated per path and lost on restart.
    """

    def __init__(
        self,
        stored_schemes: dict[Path, tuple[str, ...]] | None = None,
        default_schemes: tuple[str, ...] = DEFAULT_MOCK_SCHEMES,
    ) -> None:
        """
        Initialize mock provider with in-memory storage.

        Args:
            stored_schemes: Scheme ids already present per storage path
            default_schemes: Scheme ids installed by a default download
        """
        self._stored: dict[Path, tuple[str, ...]] = dict(stored_schemes or {})
        self._default_schemes = default_schemes
        self._outcomes: dict[str, VerificationOutcome] = {}

        # Failure injection
        self.download_failures = 0
        self.fail_refresh = False
        self.verify_delay_seconds = 0.0

        # Call tracking
        self.download_calls = 0
        self.refresh_calls = 0
        self.verified_generations: deque[int] = deque(maxlen=VERIFIED_HISTORY)

        logger.debug("mock_trust_provider_initialized")

    @property
    def mode(self) -> TrustMode:
        return TrustMode.MOCK

    # =========================================================================
    # Registry
    # =========================================================================

    def register_valid(self, message: str, attributes: AttributeList) -> None:
        """Make `message` verify as VALID with the given attributes."""
        self._outcomes[message] = VerificationOutcome.valid(attributes)

    def register_invalid(self, message: str, status: ProofStatus = ProofStatus.INVALID) -> None:
        """Make `message` verify with a non-valid status."""
        self._outcomes[message] = VerificationOutcome.invalid(status)

    def register_error(self, message: str, cause: str) -> None:
        """Make verification of `message` report a library error."""
        self._outcomes[message] = VerificationOutcome.error(cause)

    def clear_all(self) -> None:
        """Clear registered outcomes and call tracking."""
        self._outcomes.clear()
        self.verified_generations.clear()
        self.download_calls = 0
        self.refresh_calls = 0

    # =========================================================================
    # TrustProvider
    # =========================================================================

    async def verify(
        self,
        message: SignedMessage,
        configuration: TrustConfiguration,
        policy: Any | None = None,
    ) -> VerificationOutcome:
        """Return the registered outcome for the message text."""
        if self.verify_delay_seconds:
            await asyncio.sleep(self.verify_delay_seconds)

        self.verified_generations.append(configuration.generation)

        if configuration.is_empty:
            return VerificationOutcome.error("No schemes loaded")

        return self._outcomes.get(
            message.message,
            VerificationOutcome.invalid(ProofStatus.INVALID),
        )

    async def load_configuration(self, path: Path) -> TrustConfiguration:
        """Build a snapshot from the simulated storage."""
        scheme_ids = self._stored.get(path, ())
        return TrustConfiguration(
            path=path,
            schemes={sid: SchemeInfo(id=sid) for sid in scheme_ids},
        )

    async def download_default_schemes(self, path: Path) -> None:
        """Install the default schemes, failing while failures are queued."""
        self.download_calls += 1
        if self.download_failures > 0:
            self.download_failures -= 1
            raise SchemeDownloadError("Mock download failure")

        self._stored[path] = self._default_schemes
        logger.info("mock_schemes_downloaded", path=str(path))

    async def refresh_configuration(
        self,
        current: TrustConfiguration,
    ) -> TrustConfiguration:
        """Return a new snapshot one generation ahead."""
        self.refresh_calls += 1
        if self.fail_refresh:
            raise SchemeUpdateError("Mock refresh failure")

        return TrustConfiguration(
            path=current.path,
            schemes=dict(current.schemes),
            generation=current.generation + 1,
        )
