"""Prometheus-compatible metrics endpoint for the relay."""

from fastapi import APIRouter, Response

from app.monitoring.registry import registry


router = APIRouter(tags=["metrics"])

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4"


@router.get("/metrics", response_class=Response)
def export_metrics() -> Response:
    """Expose connection, event and store-failure counters."""

    return Response(content=registry.render(), media_type=PROMETHEUS_CONTENT_TYPE)
