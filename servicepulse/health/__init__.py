"""Health-status monitoring of a target endpoint."""

from .monitor import HealthCacheEntry, HealthCheckResult, HealthMonitor, HealthStatus
from .ticker import Ticker

__all__ = ["HealthCacheEntry", "HealthCheckResult", "HealthMonitor", "HealthStatus", "Ticker"]
