"""
Services
========

Services:
- sigverify: HTTP verification of IRMA attribute-based signatures
"""

__all__ = [
    "sigverify",
]
