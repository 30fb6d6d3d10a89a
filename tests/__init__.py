"""
Sigverify Test Suite
====================

Test organization:
- tests/unit/                 - Trust layer and logging (no external tools)
- tests/services/sigverify/   - HTTP endpoint and gateway tests

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=shared             # With coverage
"""
