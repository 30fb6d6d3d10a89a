"""
Trust Store
===========

Owns the trust configuration used for every verification call.

The configuration is an immutable snapshot published by rebinding a
single reference. Request handlers read it without locking; the refresh
loop is the only writer and builds a complete new snapshot before
publishing it.

Version: 0.1.0
"""

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.logging import get_logger
from shared.trust.exceptions import (
    ConfigurationError,
    SchemeDownloadError,
    TrustStoreInitializationError,
    TrustStoreNotReadyError,
)
from shared.trust.models import TrustConfiguration
from shared.trust.provider import TrustProvider

logger = get_logger(__name__)


class TrustStore:
    """
    Holder of the current trust configuration snapshot.

    Example:
        >>> store = TrustStore(provider, Path("/var/lib/schemes"))
        >>> await store.initialize()
        >>> store.start_auto_refresh(15)
        >>> snapshot = store.current_configuration()
    """

    def __init__(
        self,
        provider: TrustProvider,
        location: Path,
        download_attempts: int = 3,
        retry_wait_seconds: float = 2.0,
    ) -> None:
        """
        Initialize the store.

        Args:
            provider: Trust library adapter
            location: Scheme storage directory
            download_attempts: Attempts for the default scheme download
            retry_wait_seconds: Base back-off between download attempts
        """
        self.provider = provider
        self.location = Path(location)
        self.download_attempts = download_attempts
        self.retry_wait_seconds = retry_wait_seconds

        self._current: TrustConfiguration | None = None
        self._refresh_lock = asyncio.Lock()
        self._refresh_task: asyncio.Task[None] | None = None

        self.last_refresh_at: datetime | None = None
        self.consecutive_failures = 0
        self.last_error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self._current is not None

    def current_configuration(self) -> TrustConfiguration:
        """
        Get the snapshot to use for one verification call.

        Raises:
            TrustStoreNotReadyError: If initialize() has not succeeded
        """
        configuration = self._current
        if configuration is None:
            raise TrustStoreNotReadyError("Trust store has not been initialized")
        return configuration

    # =========================================================================
    # Initialization
    # =========================================================================

    async def initialize(self) -> TrustConfiguration:
        """
        Load scheme material, falling back to the default schemes.

        Raises:
            TrustStoreInitializationError: If no usable configuration
                could be loaded or downloaded
        """
        logger.info("trust_store_initializing", location=str(self.location))

        try:
            await asyncio.to_thread(self.location.mkdir, parents=True, exist_ok=True)
            configuration = await self.provider.load_configuration(self.location)

            if configuration.is_empty:
                logger.info("trust_store_no_schemes_found", location=str(self.location))
                await self._download_defaults()
                configuration = await self.provider.load_configuration(self.location)
        except (OSError, ConfigurationError) as e:
            logger.error("trust_store_initialization_failed", error=str(e))
            raise TrustStoreInitializationError(str(e)) from e

        if configuration.is_empty:
            logger.error("trust_store_initialization_failed", error="no schemes available")
            raise TrustStoreInitializationError(
                f"No schemes available in {self.location} after default download"
            )

        self._publish(configuration)

        logger.info(
            "trust_store_initialized",
            schemes=configuration.scheme_ids,
            generation=configuration.generation,
        )
        return configuration

    async def _download_defaults(self) -> None:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(SchemeDownloadError),
            stop=stop_after_attempt(self.download_attempts),
            wait=wait_exponential(multiplier=self.retry_wait_seconds, max=30),
            before_sleep=lambda retry_state: logger.warning(
                "default_scheme_download_retry",
                attempt=retry_state.attempt_number,
            ),
            reraise=True,
        ):
            with attempt:
                await self.provider.download_default_schemes(self.location)

    # =========================================================================
    # Refresh
    # =========================================================================

    async def refresh(self) -> bool:
        """
        Run one refresh cycle.

        Failures are logged and leave the current snapshot in place.

        Returns:
            True if a new snapshot was published
        """
        async with self._refresh_lock:
            current = self.current_configuration()
            try:
                configuration = await self.provider.refresh_configuration(current)
            except ConfigurationError as e:
                self.consecutive_failures += 1
                self.last_error = str(e)
                logger.warning(
                    "trust_store_refresh_failed",
                    error=str(e),
                    consecutive_failures=self.consecutive_failures,
                    generation=current.generation,
                )
                return False

            self._publish(configuration)

        logger.info(
            "trust_store_refreshed",
            generation=configuration.generation,
            schemes=configuration.scheme_ids,
        )
        return True

    def start_auto_refresh(self, interval_minutes: float) -> asyncio.Task[None]:
        """
        Start the background refresh loop.

        Args:
            interval_minutes: Minutes between refresh cycles

        Returns:
            The running refresh task
        """
        if self._refresh_task is not None and not self._refresh_task.done():
            return self._refresh_task

        self._refresh_task = asyncio.create_task(
            self._refresh_loop(interval_minutes * 60),
            name="trust-store-refresh",
        )
        logger.info("trust_store_auto_refresh_started", interval_minutes=interval_minutes)
        return self._refresh_task

    async def _refresh_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.refresh()
            except Exception as e:
                self.consecutive_failures += 1
                self.last_error = str(e)
                logger.error("trust_store_refresh_loop_error", error=str(e))

    async def stop(self) -> None:
        """Stop the background refresh loop."""
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("trust_store_auto_refresh_stopped")

    def _publish(self, configuration: TrustConfiguration) -> None:
        self._current = configuration
        self.last_refresh_at = datetime.now(UTC)
        self.consecutive_failures = 0
        self.last_error = None

    # =========================================================================
    # Status
    # =========================================================================

    def status(self) -> dict[str, Any]:
        """Describe the store for health reporting."""
        configuration = self._current
        refreshing = self._refresh_task is not None and not self._refresh_task.done()

        if configuration is None:
            status = "unhealthy"
        elif self.consecutive_failures:
            status = "degraded"
        else:
            status = "healthy"

        return {
            "status": status,
            "mode": self.provider.mode.value,
            "location": str(self.location),
            "generation": configuration.generation if configuration else None,
            "schemes": configuration.scheme_ids if configuration else [],
            "last_refresh_at": self.last_refresh_at.isoformat() if self.last_refresh_at else None,
            "auto_refresh": refreshing,
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
        }
