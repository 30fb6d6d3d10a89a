"""
Request Dependencies
====================

FastAPI dependencies resolving the process-wide trust store.
"""

from fastapi import Depends, HTTPException, Request, status

from services.sigverify.gateway import VerificationGateway
from shared.config import settings
from shared.trust import TrustStore


def get_trust_store(request: Request) -> TrustStore:
    """Get the trust store attached to the application at startup."""
    store: TrustStore | None = getattr(request.app.state, "trust_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Trust store not initialized",
        )
    return store


def get_gateway(store: TrustStore = Depends(get_trust_store)) -> VerificationGateway:
    """Build a gateway bound to the current trust store."""
    return VerificationGateway(store, max_body_bytes=settings.gateway.max_body_bytes)
