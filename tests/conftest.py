"""
Test Configuration
==================

Pytest fixtures for signature verification tests.
"""

import os
import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["TRUST_MODE"] = "mock"
os.environ.setdefault("SCHEMES_DIR", tempfile.mkdtemp(prefix="sigverify-schemes-"))

from shared.trust import MockTrustProvider, TrustStore  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def schemes_dir(tmp_path: Path) -> Path:
    """Empty scheme storage location."""
    path = tmp_path / "schemes"
    path.mkdir()
    return path


@pytest.fixture
def mock_provider(schemes_dir: Path) -> MockTrustProvider:
    """Mock provider with one scheme already stored."""
    return MockTrustProvider(stored_schemes={schemes_dir: ("irma-demo",)})


@pytest_asyncio.fixture
async def trust_store(
    mock_provider: MockTrustProvider,
    schemes_dir: Path,
) -> AsyncGenerator[TrustStore, None]:
    """Initialized trust store backed by the mock provider."""
    store = TrustStore(mock_provider, schemes_dir, retry_wait_seconds=0)
    await store.initialize()
    yield store
    await store.stop()


@pytest_asyncio.fixture
async def sigverify_client(trust_store: TrustStore) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Signature Verification Service."""
    from services.sigverify.main import app

    app.state.trust_store = trust_store
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    del app.state.trust_store


@pytest.fixture
def signed_message() -> dict[str, Any]:
    """A structurally valid signed message."""
    return {
        "@context": "https://irma.app/ld/signature/v2",
        "signature": [
            {
                "c": 1234567890,
                "A": 987654321,
                "e_response": 42,
                "v_response": 43,
                "a_responses": {"0": 44},
                "a_disclosed": {"1": 45, "2": 46},
            }
        ],
        "indices": [[{"cred": 0, "attr": 2}], [{"cred": 0, "attr": 3}]],
        "nonce": 38276438734847,
        "context": 1,
        "message": "I agree to the terms",
        "timestamp": {"Time": 1700000000, "ServerUrl": "https://irma.example/atumd", "Sig": {}},
    }
