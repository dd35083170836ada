import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from feedrank.services.personalization.context import PersonalizationContext

logger = logging.getLogger(__name__)

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"


@dataclass(frozen=True)
class PerformanceThresholds:
    target_ms: float = 500.0
    critical_ms: float = 1000.0


@dataclass
class RequestMetrics:
    processing_time_ms: float
    articles_analyzed: int
    articles_returned: int
    cache_hit: bool
    algorithms_used: List[str] = field(default_factory=list)
    user_id: Optional[str] = None
    sort_by: str = "relevance"


@dataclass
class AlertReport:
    alerts: List[str] = field(default_factory=list)
    severity: str = SEVERITY_INFO


class PerformanceMonitor:
    """Checks feed requests against latency thresholds and logs them."""

    def __init__(self, thresholds: Optional[PerformanceThresholds] = None):
        self.thresholds = thresholds or PerformanceThresholds()

    def validate(self, context: "PersonalizationContext") -> bool:
        """True when the ranking pass met the latency target."""
        return context.performance_metrics.processing_time_ms <= self.thresholds.target_ms

    def check_alerts(self, metrics: RequestMetrics) -> AlertReport:
        report = AlertReport()
        elapsed = metrics.processing_time_ms

        if elapsed > self.thresholds.critical_ms:
            report.alerts.append(
                f"Processing time {elapsed:.1f}ms exceeds critical threshold {self.thresholds.critical_ms:.0f}ms"
            )
            report.severity = SEVERITY_ERROR
        elif elapsed > self.thresholds.target_ms:
            report.alerts.append(
                f"Processing time {elapsed:.1f}ms exceeds target {self.thresholds.target_ms:.0f}ms"
            )
            report.severity = SEVERITY_WARNING

        return report

    def track(self, metrics: RequestMetrics) -> AlertReport:
        report = self.check_alerts(metrics)
        logger.info(
            "personalized_feed", extra={
                **asdict(metrics),
                "passes_target": metrics.processing_time_ms <= self.thresholds.target_ms,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

        if report.severity == SEVERITY_ERROR:
            logger.error(f"Feed performance alert: {'; '.join(report.alerts)}")
        elif report.severity == SEVERITY_WARNING:
            logger.warning(f"Feed performance alert: {'; '.join(report.alerts)}")
        return report
