"""Sentry error tracking.

Sentry is optional: with no SENTRY_DSN configured, init_error_tracking is a
no-op and capture_error returns None.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from assessment.core.config import settings

logger = logging.getLogger(__name__)

_initialized = False


def _serialize_value(value: Any) -> Any:
    """Convert a context value to something JSON-compatible."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize_value(item) for item in value]
    return str(value)


def init_error_tracking() -> bool:
    """Initialize the Sentry SDK when a DSN is configured.

    Returns:
        True if Sentry was initialized, False if skipped or failed.

    Note:
        Does not raise; failures are logged so the API still starts.
    """
    global _initialized

    if not settings.SENTRY_DSN:
        logger.debug("Sentry initialization skipped (DSN not configured)")
        return False

    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENV,
            release=settings.APP_VERSION,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[
                LoggingIntegration(
                    level=None,  # Don't capture breadcrumbs from logs
                    event_level=None,  # Don't send log events
                ),
                FastApiIntegration(transaction_style="endpoint"),
                StarletteIntegration(transaction_style="endpoint"),
            ],
            send_default_pii=False,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
        return False

    _initialized = True
    logger.info(
        f"Sentry initialized for environment '{settings.ENV}' "
        f"with {settings.SENTRY_TRACES_SAMPLE_RATE * 100:.0f}% trace sampling"
    )
    return True


def capture_error(
    exception: BaseException,
    *,
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
    level: str = "error",
) -> Optional[str]:
    """Capture an exception and send to Sentry.

    Args:
        exception: The exception to capture.
        context: Additional context data to attach.
        tags: Tags for categorization and filtering in Sentry.
        level: Error severity level. Defaults to "error".

    Returns:
        Event ID if captured, None if Sentry is not initialized.
    """
    if not _initialized:
        return None

    with sentry_sdk.new_scope() as scope:
        if context:
            scope.set_context("additional", _serialize_value(context))
        if tags:
            for key, value in tags.items():
                scope.set_tag(key, value)
        scope.level = level
        return sentry_sdk.capture_exception(exception)


def shutdown_error_tracking(timeout: float = 2.0) -> None:
    """Flush pending Sentry events."""
    if _initialized:
        sentry_sdk.flush(timeout=timeout)
