"""
Tests for Sentry error tracking setup and capture.
"""
from unittest.mock import MagicMock, patch

import pytest

from assessment import observability


@pytest.fixture
def reset_tracking():
    observability._initialized = False
    yield
    observability._initialized = False


class TestInitErrorTracking:
    """Tests for init_error_tracking()."""

    def test_skipped_without_dsn(self, reset_tracking):
        with patch.object(observability.settings, "SENTRY_DSN", ""), patch(
            "assessment.observability.sentry_sdk.init"
        ) as mock_init:
            assert observability.init_error_tracking() is False

        mock_init.assert_not_called()

    def test_initializes_with_dsn(self, reset_tracking):
        with patch.object(
            observability.settings, "SENTRY_DSN", "https://public@sentry.io/123456"
        ), patch("assessment.observability.sentry_sdk.init") as mock_init:
            assert observability.init_error_tracking() is True

        kwargs = mock_init.call_args.kwargs
        assert kwargs["dsn"] == "https://public@sentry.io/123456"
        assert kwargs["send_default_pii"] is False
        assert observability._initialized is True

    def test_init_failure_is_logged_not_raised(self, reset_tracking):
        with patch.object(
            observability.settings, "SENTRY_DSN", "https://public@sentry.io/123456"
        ), patch(
            "assessment.observability.sentry_sdk.init", side_effect=RuntimeError("bad dsn")
        ):
            assert observability.init_error_tracking() is False

        assert observability._initialized is False


class TestCaptureError:
    """Tests for capture_error()."""

    def test_noop_when_not_initialized(self, reset_tracking):
        with patch("assessment.observability.sentry_sdk.capture_exception") as mock_capture:
            assert observability.capture_error(ValueError("boom")) is None

        mock_capture.assert_not_called()

    def test_attaches_context_and_tags(self, reset_tracking):
        observability._initialized = True
        scope = MagicMock()
        new_scope = MagicMock()
        new_scope.return_value.__enter__.return_value = scope

        with patch("assessment.observability.sentry_sdk.new_scope", new_scope), patch(
            "assessment.observability.sentry_sdk.capture_exception",
            return_value="event-1",
        ) as mock_capture:
            event_id = observability.capture_error(
                ValueError("boom"),
                context={"session_id": 5, "goals": ("JOB_FIT",)},
                tags={"error_type": "ValueError"},
            )

        assert event_id == "event-1"
        scope.set_context.assert_called_once_with(
            "additional", {"session_id": 5, "goals": ["JOB_FIT"]}
        )
        scope.set_tag.assert_called_once_with("error_type", "ValueError")
        mock_capture.assert_called_once()
