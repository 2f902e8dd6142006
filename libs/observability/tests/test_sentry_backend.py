"""Tests for the Sentry backend."""

from datetime import date, datetime, timezone
from unittest import mock
from uuid import UUID

from libs.observability.config import SentryConfig
from libs.observability.sentry_backend import (
    SentryBackend,
    _serialize_context,
    _serialize_value,
)


class TestSerializeValue:
    """Tests for context value serialization."""

    def test_primitives_unchanged(self) -> None:
        for value in (None, True, 3, 2.5, "text"):
            assert _serialize_value(value) == value

    def test_dates_become_iso_strings(self) -> None:
        moment = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        assert _serialize_value(moment) == "2024-03-01T09:30:00+00:00"
        assert _serialize_value(date(2024, 3, 1)) == "2024-03-01"

    def test_uuid_and_bytes(self) -> None:
        uid = UUID("12345678-1234-5678-1234-567812345678")
        assert _serialize_value(uid) == "12345678-1234-5678-1234-567812345678"
        assert _serialize_value(b"abc") == "abc"
        assert _serialize_value(b"\xff\xfe") == "<bytes: 2 bytes>"

    def test_containers(self) -> None:
        value = {"ids": ("a", "b"), "tags": {"y", "x"}}
        assert _serialize_value(value) == {"ids": ["a", "b"], "tags": ["x", "y"]}

    def test_circular_reference(self) -> None:
        data: dict = {"name": "loop"}
        data["self"] = data
        result = _serialize_value(data)
        assert result["self"] == "<circular reference: dict>"

    def test_unknown_type_falls_back_to_str(self) -> None:
        class Marker:
            def __str__(self) -> str:
                return "marker"

        assert _serialize_context({"m": Marker()}) == {"m": "marker"}


class TestSentryBackend:
    """Tests for SentryBackend lifecycle."""

    def test_init_skipped_without_dsn(self) -> None:
        backend = SentryBackend(SentryConfig(enabled=True, dsn=None))
        assert backend.init() is False

    def test_init_skipped_when_disabled(self) -> None:
        backend = SentryBackend(
            SentryConfig(enabled=False, dsn="https://key@sentry.example/1")
        )
        assert backend.init() is False

    def test_init_calls_sdk(self) -> None:
        config = SentryConfig(
            enabled=True,
            dsn="https://key@sentry.example/1",
            environment="production",
            release="0.1.0",
        )
        backend = SentryBackend(config)
        with mock.patch("sentry_sdk.init") as mock_init:
            assert backend.init() is True
        kwargs = mock_init.call_args.kwargs
        assert kwargs["dsn"] == "https://key@sentry.example/1"
        assert kwargs["environment"] == "production"
        assert kwargs["send_default_pii"] is False

    def test_init_failure_returns_false(self) -> None:
        backend = SentryBackend(
            SentryConfig(enabled=True, dsn="https://key@sentry.example/1")
        )
        with mock.patch("sentry_sdk.init", side_effect=RuntimeError("bad dsn")):
            assert backend.init() is False

    def test_uninitialized_calls_are_noops(self) -> None:
        backend = SentryBackend(SentryConfig(enabled=False))
        assert backend.capture_error(ValueError("x")) is None
        assert backend.capture_message("x") is None
        backend.set_user("user-1")
        backend.flush()
        backend.shutdown()
