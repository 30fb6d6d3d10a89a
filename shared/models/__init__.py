"""
Shared Models
=============

Pydantic models shared across services.
"""

from shared.models.common import HealthResponse

__all__ = [
    "HealthResponse",
]
