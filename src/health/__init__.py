"""Health checks and the FastAPI health server.

Usage:
    from src.health import create_health_app

    app = create_health_app(pipeline)
    uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from src.health.checks import (
    HealthChecker,
    HealthReport,
    HealthStatus,
    CheckResult,
    CheckStatus,
)
from src.health.server import create_health_app, run_health_server

__all__ = [
    "HealthChecker",
    "HealthReport",
    "HealthStatus",
    "CheckResult",
    "CheckStatus",
    "create_health_app",
    "run_health_server",
]
