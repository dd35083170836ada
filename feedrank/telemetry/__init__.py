from .performance import AlertReport, PerformanceMonitor, PerformanceThresholds, RequestMetrics

__all__ = [
    "AlertReport",
    "PerformanceMonitor",
    "PerformanceThresholds",
    "RequestMetrics",
]
