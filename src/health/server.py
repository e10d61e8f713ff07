"""FastAPI health server for production monitoring.

Provides HTTP endpoints for:
- /health - Full health check (credentials, rate limits, provider metrics)
- /live - Liveness probe
- /metrics - Prometheus metrics in text format

Usage:
    from src.health.server import create_health_app
    app = create_health_app(pipeline)
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Dict

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
import structlog

from src.health.checks import HealthChecker, HealthStatus
from src.observability.metrics import get_metrics_text, get_metrics_content_type

if TYPE_CHECKING:
    from src.orchestration.research_pipeline import ResearchPipeline

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover
    logger.info("health_server_starting")
    yield
    logger.info("health_server_stopping")


def create_health_app(
    pipeline: "ResearchPipeline",
    title: str = "Research Orchestrator Health API",
    version: str = "1.0.0",
) -> FastAPI:
    """Create FastAPI application with health endpoints.

    Args:
        pipeline: Wired pipeline whose state is reported
        title: API title
        version: API version

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        version=version,
        description="Health check and metrics endpoints for the research orchestrator",
        lifespan=lifespan,
    )
    app.state.health_checker = HealthChecker(pipeline)
    app.state.pipeline = pipeline

    @app.get(
        "/health",
        response_model=None,
        summary="Full health check",
        responses={
            200: {"description": "Healthy or degraded"},
            503: {"description": "One or more checks failed"},
        },
    )
    async def health_check(request: Request) -> Response:
        """Returns 200 if healthy/degraded, 503 if unhealthy."""
        checker: HealthChecker = request.app.state.health_checker
        report = await checker.check_all()

        status_code = (
            status.HTTP_200_OK
            if report.status != HealthStatus.UNHEALTHY
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        content = report.to_dict()
        content["rate_limits"] = request.app.state.pipeline.rate_limit_status()
        content["metrics"] = request.app.state.pipeline.metrics.get_summary()
        return JSONResponse(content=content, status_code=status_code)

    @app.get("/live", response_model=None, summary="Liveness probe")
    async def liveness_probe(request: Request) -> Response:
        checker: HealthChecker = request.app.state.health_checker
        is_alive = await checker.is_alive()
        return JSONResponse(
            content={"alive": is_alive, "message": "Service is alive"},
            status_code=status.HTTP_200_OK,
        )

    @app.get(
        "/metrics",
        response_class=PlainTextResponse,
        summary="Prometheus metrics",
    )
    async def prometheus_metrics() -> Response:
        return Response(
            content=get_metrics_text(),
            media_type=get_metrics_content_type(),
        )

    @app.get("/", response_model=None, summary="Root endpoint")
    async def root() -> Dict[str, Any]:
        return {
            "name": title,
            "version": version,
            "endpoints": {
                "health": "/health",
                "live": "/live",
                "metrics": "/metrics",
            },
        }

    return app


def run_health_server(  # pragma: no cover
    pipeline: "ResearchPipeline",
    host: str = "0.0.0.0",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run health server (blocking)."""
    import uvicorn

    app = create_health_app(pipeline)
    logger.info("health_server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level=log_level)
