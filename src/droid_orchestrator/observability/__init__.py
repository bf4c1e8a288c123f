"""Public observability primitives: structured logging and stage correlation."""

from droid_orchestrator.observability.logging import (
    LoggingConfig,
    LoggingHandle,
    correlation_scope,
    redact_argv,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "LoggingHandle",
    "correlation_scope",
    "redact_argv",
    "setup_logging",
    "shutdown_logging",
]
