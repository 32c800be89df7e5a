"""
Observability module for the calpalette extraction pipeline.

Stage timing and memory sampling, logged through loguru.
"""

from .metrics import (
    PerformanceMetrics,
    MetricsCollector,
    get_metrics_collector,
    performance_monitor
)

__all__ = [
    'PerformanceMetrics',
    'MetricsCollector',
    'get_metrics_collector',
    'performance_monitor'
]
