"""Run metrics."""

from office_tracker.monitoring.metrics import MetricPoint, MetricType, RunMetricsCollector

__all__ = ["MetricPoint", "MetricType", "RunMetricsCollector"]
