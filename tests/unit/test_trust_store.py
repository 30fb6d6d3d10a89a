"""
Unit tests for the trust store.
"""

import asyncio
from pathlib import Path

import pytest

from shared.trust import (
    MockTrustProvider,
    TrustStore,
    TrustStoreInitializationError,
    TrustStoreNotReadyError,
)


class TestInitialize:
    """Tests for TrustStore.initialize."""

    @pytest.mark.asyncio
    async def test_uses_stored_schemes(
        self,
        mock_provider: MockTrustProvider,
        schemes_dir: Path,
    ) -> None:
        """Existing schemes are loaded without downloading."""
        store = TrustStore(mock_provider, schemes_dir)

        configuration = await store.initialize()

        assert configuration.scheme_ids == ["irma-demo"]
        assert store.current_configuration() is configuration
        assert mock_provider.download_calls == 0

    @pytest.mark.asyncio
    async def test_downloads_defaults_when_empty(self, schemes_dir: Path) -> None:
        provider = MockTrustProvider()
        store = TrustStore(provider, schemes_dir)

        configuration = await store.initialize()

        assert provider.download_calls == 1
        assert configuration.scheme_ids == ["irma-demo", "pbdf"]

    @pytest.mark.asyncio
    async def test_creates_missing_location(self, tmp_path: Path) -> None:
        location = tmp_path / "not" / "yet" / "there"
        store = TrustStore(MockTrustProvider(), location)

        await store.initialize()

        assert location.is_dir()

    @pytest.mark.asyncio
    async def test_retries_transient_download_failures(self, schemes_dir: Path) -> None:
        provider = MockTrustProvider()
        provider.download_failures = 2
        store = TrustStore(provider, schemes_dir, download_attempts=3, retry_wait_seconds=0)

        await store.initialize()

        assert provider.download_calls == 3
        assert store.is_ready

    @pytest.mark.asyncio
    async def test_fails_when_download_keeps_failing(self, schemes_dir: Path) -> None:
        provider = MockTrustProvider()
        provider.download_failures = 10
        store = TrustStore(provider, schemes_dir, download_attempts=3, retry_wait_seconds=0)

        with pytest.raises(TrustStoreInitializationError):
            await store.initialize()

        assert provider.download_calls == 3
        assert not store.is_ready

    @pytest.mark.asyncio
    async def test_fails_when_download_yields_nothing(self, schemes_dir: Path) -> None:
        provider = MockTrustProvider(default_schemes=())
        store = TrustStore(provider, schemes_dir)

        with pytest.raises(TrustStoreInitializationError, match="No schemes"):
            await store.initialize()

    def test_not_ready_before_initialize(
        self,
        mock_provider: MockTrustProvider,
        schemes_dir: Path,
    ) -> None:
        store = TrustStore(mock_provider, schemes_dir)

        with pytest.raises(TrustStoreNotReadyError):
            store.current_configuration()
        assert store.status()["status"] == "unhealthy"


class TestRefresh:
    """Tests for refreshing the published snapshot."""

    @pytest.mark.asyncio
    async def test_refresh_publishes_new_snapshot(self, trust_store: TrustStore) -> None:
        before = trust_store.current_configuration()

        assert await trust_store.refresh() is True

        after = trust_store.current_configuration()
        assert after is not before
        assert after.generation == before.generation + 1
        # The old snapshot is untouched
        assert before.generation == 0
        assert before.scheme_ids == ["irma-demo"]

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_last_good(
        self,
        trust_store: TrustStore,
        mock_provider: MockTrustProvider,
    ) -> None:
        before = trust_store.current_configuration()
        mock_provider.fail_refresh = True

        assert await trust_store.refresh() is False
        assert await trust_store.refresh() is False

        assert trust_store.current_configuration() is before
        status = trust_store.status()
        assert status["status"] == "degraded"
        assert status["consecutive_failures"] == 2
        assert "Mock refresh failure" in status["last_error"]

    @pytest.mark.asyncio
    async def test_success_clears_failures(
        self,
        trust_store: TrustStore,
        mock_provider: MockTrustProvider,
    ) -> None:
        mock_provider.fail_refresh = True
        await trust_store.refresh()
        mock_provider.fail_refresh = False

        assert await trust_store.refresh() is True
        assert trust_store.status()["status"] == "healthy"
        assert trust_store.status()["last_error"] is None

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_are_serialized(self, trust_store: TrustStore) -> None:
        results = await asyncio.gather(*(trust_store.refresh() for _ in range(4)))

        assert all(results)
        assert trust_store.current_configuration().generation == 4


class TestAutoRefresh:
    """Tests for the background refresh loop."""

    @pytest.mark.asyncio
    async def test_loop_refreshes_periodically(
        self,
        trust_store: TrustStore,
        mock_provider: MockTrustProvider,
    ) -> None:
        trust_store.start_auto_refresh(interval_minutes=0.0005)

        await asyncio.sleep(0.2)
        await trust_store.stop()

        assert mock_provider.refresh_calls >= 2
        assert trust_store.current_configuration().generation == mock_provider.refresh_calls

    @pytest.mark.asyncio
    async def test_loop_survives_failures(
        self,
        trust_store: TrustStore,
        mock_provider: MockTrustProvider,
    ) -> None:
        mock_provider.fail_refresh = True
        task = trust_store.start_auto_refresh(interval_minutes=0.0005)

        await asyncio.sleep(0.2)

        assert not task.done()
        assert trust_store.current_configuration().generation == 0
        assert trust_store.consecutive_failures >= 2
        await trust_store.stop()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, trust_store: TrustStore) -> None:
        first = trust_store.start_auto_refresh(15)
        second = trust_store.start_auto_refresh(15)

        assert first is second
        await trust_store.stop()
        assert first.cancelled()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, trust_store: TrustStore) -> None:
        await trust_store.stop()

        assert trust_store.status()["auto_refresh"] is False
