"""
Signature Verification Service Routes
=====================================

API route handlers for the signature verification service.
"""

from services.sigverify.routes import verify


__all__ = ["verify"]
