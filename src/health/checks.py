"""Health checks for the research orchestrator.

Provides checks for:
- Provider credentials (are the API keys resolvable)
- Rate limit state (is any provider currently blocked)
- Provider request outcomes (recent failure ratio)
- Output directory writability

Usage:
    checker = HealthChecker(pipeline)
    report = await checker.check_all()
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List

import structlog

if TYPE_CHECKING:
    from src.orchestration.research_pipeline import ResearchPipeline

logger = structlog.get_logger()

# Above this share of failed terminal outcomes a provider is reported degraded
FAILURE_RATIO_WARN = 0.5


class HealthStatus(str, Enum):
    """Overall health status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CheckStatus(str, Enum):
    """Individual check status."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: CheckStatus
    message: str
    duration_ms: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 2),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class HealthReport:
    """Complete health report with all check results."""

    status: HealthStatus
    checks: List[CheckResult]
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "checks": [c.to_dict() for c in self.checks],
            "timestamp": self.timestamp.isoformat(),
        }


class HealthChecker:
    """Health checker over a wired ResearchPipeline."""

    def __init__(self, pipeline: "ResearchPipeline"):
        self.pipeline = pipeline
        self.output_dir = Path(pipeline.settings.output_dir)

    async def check_all(self) -> HealthReport:
        """Run all health checks and return comprehensive report."""
        checks: List[CheckResult] = []

        results = await asyncio.gather(
            self.check_credentials(),
            self.check_rate_limits(),
            self.check_provider_metrics(),
            self.check_output_directory(),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, Exception):
                logger.error("health_check_crashed", error=str(result))
                checks.append(
                    CheckResult(
                        name="unknown",
                        status=CheckStatus.FAIL,
                        message=f"Check failed: {str(result)}",
                    )
                )
            elif isinstance(result, CheckResult):
                checks.append(result)

        return HealthReport(status=self._determine_overall_status(checks), checks=checks)

    def _determine_overall_status(self, checks: List[CheckResult]) -> HealthStatus:
        if any(c.status == CheckStatus.FAIL for c in checks):
            return HealthStatus.UNHEALTHY
        if any(c.status == CheckStatus.WARN for c in checks):
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    async def check_credentials(self) -> CheckResult:
        """FAIL when no enabled provider has credentials, WARN when some lack them."""
        start = time.monotonic()
        diagnostics = self.pipeline.secret_diagnostics()
        missing = [
            name
            for name, diag in diagnostics.items()
            if not diag["primary_secret_exists"] and not diag["found_alternatives"]
        ]
        duration_ms = (time.monotonic() - start) * 1000

        if diagnostics and len(missing) == len(diagnostics):
            status = CheckStatus.FAIL
            message = "No provider credentials configured"
        elif missing:
            status = CheckStatus.WARN
            message = f"Missing credentials for: {', '.join(missing)}"
        else:
            status = CheckStatus.PASS
            message = "All provider credentials present"

        return CheckResult(
            name="credentials",
            status=status,
            message=message,
            duration_ms=duration_ms,
            details=diagnostics,
        )

    async def check_rate_limits(self) -> CheckResult:
        statuses = self.pipeline.rate_limit_status()
        blocked = [name for name, s in statuses.items() if s["is_blocked"]]
        return CheckResult(
            name="rate_limits",
            status=CheckStatus.WARN if blocked else CheckStatus.PASS,
            message=(
                f"Rate limited: {', '.join(blocked)}" if blocked else "No provider blocked"
            ),
            details=statuses,
        )

    async def check_provider_metrics(self) -> CheckResult:
        metrics = self.pipeline.metrics.get_all_metrics()
        degraded = []
        for name, m in metrics.items():
            terminal = m.successful_requests + m.failed_requests
            if terminal and m.failed_requests / terminal > FAILURE_RATIO_WARN:
                degraded.append(name)

        return CheckResult(
            name="provider_metrics",
            status=CheckStatus.WARN if degraded else CheckStatus.PASS,
            message=(
                f"High failure ratio: {', '.join(degraded)}"
                if degraded
                else "Provider failure ratios nominal"
            ),
            details={name: m.get_stats() for name, m in metrics.items()},
        )

    async def check_output_directory(self) -> CheckResult:
        start = time.monotonic()
        name = "output_directory"

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            test_file = self.output_dir / ".health_check"
            test_file.write_text("health_check")
            test_file.unlink()
        except OSError as e:
            return CheckResult(
                name=name,
                status=CheckStatus.FAIL,
                message=f"Output directory not writable: {str(e)}",
                duration_ms=(time.monotonic() - start) * 1000,
            )

        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="Output directory accessible",
            duration_ms=(time.monotonic() - start) * 1000,
            details={"path": str(self.output_dir.absolute())},
        )

    async def is_alive(self) -> bool:
        return True
