"""
Sentry Integration - Error Tracking & Monitoring

Sentry captures:
- Unhandled exceptions
- 5xx errors
- Performance traces
"""
import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from housing_desk.core.config import settings
from housing_desk.core.logging import get_logger

logger = get_logger(__name__)

SENSITIVE_HEADERS = ("authorization", "cookie", "x-api-key")


def init_sentry() -> None:
    """
    Initialize Sentry SDK.

    Call this in application startup.
    """
    if not settings.sentry_dsn:
        logger.info("Sentry DSN not configured, skipping initialization")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"housing-desk@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
        send_default_pii=False,
        before_send=_before_send,
    )

    logger.info(
        "Sentry initialized",
        environment=settings.environment,
        dsn_configured=True,
    )


def _before_send(event, hint):
    """
    Filter events before sending to Sentry.

    - Drop client errors (4xx)
    - Mask sensitive headers
    """
    if "exception" in event:
        exc_info = hint.get("exc_info")
        if exc_info:
            _, exc_value, _ = exc_info
            status_code = getattr(exc_value, "status_code", None)
            if status_code is not None and 400 <= status_code < 500:
                return None

    if "request" in event and "headers" in event["request"]:
        headers = event["request"]["headers"]
        for header in SENSITIVE_HEADERS:
            if header in headers:
                headers[header] = "[FILTERED]"

    return event


def set_user(user_id: str, role: str | None = None) -> None:
    """Set user context for Sentry."""
    sentry_sdk.set_user({"id": user_id, "role": role})
