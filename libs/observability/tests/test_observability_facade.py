"""Tests for observability facade."""

from unittest import mock

from libs.observability.config import (
    ConfigurationError,
    ObservabilityConfig,
    SentryConfig,
)
from libs.observability.facade import ObservabilityFacade


def _disabled_config() -> ObservabilityConfig:
    return ObservabilityConfig(
        service_name="test-service",
        sentry=SentryConfig(enabled=False),
    )


class TestObservabilityFacadeInit:
    """Tests for facade initialization."""

    def test_not_initialized_by_default(self) -> None:
        facade = ObservabilityFacade()
        assert facade.is_initialized is False

    def test_init_sets_initialized(self) -> None:
        facade = ObservabilityFacade()
        with mock.patch("libs.observability.config.load_config") as mock_load:
            mock_load.return_value = _disabled_config()
            assert facade.init() is True
            assert facade.is_initialized is True

    def test_disabled_sentry_creates_no_backend(self) -> None:
        facade = ObservabilityFacade()
        with mock.patch("libs.observability.config.load_config") as mock_load:
            mock_load.return_value = _disabled_config()
            facade.init()
        assert facade._sentry_backend is None

    def test_init_is_idempotent(self) -> None:
        """Test init() is idempotent - calling twice doesn't reinitialize."""
        facade = ObservabilityFacade()
        with mock.patch("libs.observability.config.load_config") as mock_load:
            mock_load.return_value = _disabled_config()
            assert facade.init() is True
            assert facade.init() is True
            assert mock_load.call_count == 1

    def test_configuration_error_returns_false(self) -> None:
        facade = ObservabilityFacade()
        with mock.patch("libs.observability.config.load_config") as mock_load:
            mock_load.side_effect = ConfigurationError("bad rate")
            assert facade.init() is False
        assert facade.is_initialized is False

    def test_enabled_sentry_initializes_backend(self) -> None:
        facade = ObservabilityFacade()
        config = ObservabilityConfig(
            service_name="test-service",
            sentry=SentryConfig(enabled=True, dsn="https://key@sentry.example/1"),
        )
        with mock.patch("libs.observability.config.load_config", return_value=config):
            with mock.patch(
                "libs.observability.sentry_backend.SentryBackend.init",
                return_value=True,
            ) as mock_init:
                facade.init()
        mock_init.assert_called_once()
        assert facade._sentry_backend is not None


class TestObservabilityFacadeCapture:
    """Tests for error and message capture."""

    def test_capture_error_before_init_is_noop(self) -> None:
        facade = ObservabilityFacade()
        assert facade.capture_error(ValueError("boom")) is None

    def test_capture_message_without_backend_is_noop(self) -> None:
        facade = ObservabilityFacade()
        with mock.patch("libs.observability.config.load_config") as mock_load:
            mock_load.return_value = _disabled_config()
            facade.init()
        assert facade.capture_message("hello") is None

    def test_capture_error_adds_service_metadata(self) -> None:
        facade = ObservabilityFacade()
        facade._initialized = True
        facade._config = ObservabilityConfig(
            service_name="aptitude-backend", service_version="1.2.3"
        )
        backend = mock.MagicMock()
        backend.capture_error.return_value = "event-1"
        facade._sentry_backend = backend

        event_id = facade.capture_error(
            ValueError("boom"), context={"path": "/api/submit"}
        )

        assert event_id == "event-1"
        context = backend.capture_error.call_args.kwargs["context"]
        assert context["path"] == "/api/submit"
        assert context["service"] == {"name": "aptitude-backend", "version": "1.2.3"}

    def test_backend_failure_is_swallowed(self) -> None:
        facade = ObservabilityFacade()
        facade._initialized = True
        backend = mock.MagicMock()
        backend.capture_error.side_effect = RuntimeError("sentry down")
        facade._sentry_backend = backend

        assert facade.capture_error(ValueError("boom")) is None

    def test_set_user_without_backend_is_noop(self) -> None:
        facade = ObservabilityFacade()
        facade.set_user("user-1")
        facade.set_context("session", {"id": "s1"})


class TestObservabilityFacadeShutdown:
    """Tests for shutdown."""

    def test_shutdown_before_init_is_noop(self) -> None:
        facade = ObservabilityFacade()
        facade.shutdown()
        assert facade.is_initialized is False

    def test_shutdown_resets_state(self) -> None:
        facade = ObservabilityFacade()
        facade._initialized = True
        backend = mock.MagicMock()
        facade._sentry_backend = backend

        facade.shutdown()
        facade.shutdown()

        backend.shutdown.assert_called_once()
        assert facade._sentry_backend is None
        assert facade.is_initialized is False

    def test_shutdown_survives_backend_error(self) -> None:
        facade = ObservabilityFacade()
        facade._initialized = True
        backend = mock.MagicMock()
        backend.shutdown.side_effect = RuntimeError("flush failed")
        facade._sentry_backend = backend

        facade.shutdown()

        assert facade._sentry_backend is None
        assert facade.is_initialized is False
