"""
Sigverify Shared Library
========================

Common utilities, configuration and abstractions used by the service.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - trust: Trust library abstraction (irma/mock) and trust store
    - models: Shared Pydantic models

Version: 0.1.0
"""

__version__ = "0.1.0"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
