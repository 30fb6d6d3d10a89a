"""
Signature Verification Service
==============================

Verifies IRMA attribute-based signatures and returns the disclosed
attributes.

This service provides:
- POST /api/verify for signed disclosure messages
- A trust store kept current by a background scheme refresh
- Health reporting on the trust configuration

Version: 0.1.0
"""

__version__ = "0.1.0"
