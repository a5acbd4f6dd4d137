"""Prometheus metrics instrumentation for application monitoring."""

from prometheus_fastapi_instrumentator import Instrumentator
from fastapi import FastAPI

from .config import Settings
from .logger import logger


def setup_monitoring(app: FastAPI, settings: Settings) -> None:
    """Instrument request metrics and expose them at /metrics when enabled."""
    if not settings.METRICS_ENABLED:
        logger.info("Prometheus metrics disabled")
        return

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health"],
        inprogress_name="workitems_http_requests_inprogress",
        inprogress_labels=True,
    )
    instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
