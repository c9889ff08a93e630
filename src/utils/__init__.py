"""
Shared infrastructure for identity sync

Provides:
- logging: structured (JSON) and console logging setup
- retry: exponential backoff decorators for commits and database scans
- tracing: OpenTelemetry spans around sync runs and table log access
- metrics: Prometheus metrics for sync runs and watermarks
"""

__version__ = "1.0.0"
__all__ = ["logging", "retry", "tracing", "metrics"]
