"""
Unit tests for structured logging processors.
"""

import logging

from shared.logging.logger import _censor_secrets, _service_context, setup_logging


class TestCensorSecrets:
    """Tests for redaction of sensitive log fields."""

    def test_disclosed_values_are_redacted(self) -> None:
        event = _censor_secrets(
            None,
            "info",
            {
                "event": "signature_verified",
                "attributes": {"pbdf.gemeente.personalData.bsn": "123456782"},
                "raw_value": "123456782",
                "attribute_count": 1,
            },
        )

        assert event["attributes"] == "***REDACTED***"
        assert event["raw_value"] == "***REDACTED***"
        assert event["event"] == "signature_verified"

    def test_nested_dicts_are_censored(self) -> None:
        event = _censor_secrets(
            None,
            "info",
            {"event": "x", "upstream": {"Authorization": "Bearer abc", "url": "https://a"}},
        )

        assert event["upstream"]["Authorization"] == "***REDACTED***"
        assert event["upstream"]["url"] == "https://a"

    def test_plain_fields_untouched(self) -> None:
        event = {"event": "trust_store_refreshed", "generation": 4, "schemes": ["pbdf"]}

        assert _censor_secrets(None, "info", dict(event)) == event


class TestServiceContext:
    def test_adds_service_name(self) -> None:
        processor = _service_context("sigverify")

        event = processor(None, "info", {"event": "x"})

        assert event["service"] == "sigverify"
        assert event["version"] == "0.1.0"

    def test_keeps_explicit_service(self) -> None:
        processor = _service_context("sigverify")

        event = processor(None, "info", {"event": "x", "service": "other"})

        assert event["service"] == "other"


class TestCensorNested:
    def test_values_inside_lists_are_redacted(self) -> None:
        event = _censor_secrets(
            None,
            "info",
            {
                "event": "x",
                "groups": [[{"id": "pbdf.gemeente.personalData.city", "rawvalue": "Nijmegen"}]],
            },
        )

        assert event["groups"] == [[{"id": "pbdf.gemeente.personalData.city", "rawvalue": "***REDACTED***"}]]


class TestSetupLogging:
    def test_uvicorn_loggers_share_the_pipeline(self) -> None:
        setup_logging(log_level="DEBUG", json_logs=True, service_name="sigverify")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("uvicorn").propagate is True
        assert logging.getLogger("uvicorn").handlers == []
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
