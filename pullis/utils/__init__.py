"""
Utility modules for Pullis.
"""

from pullis.utils.logging import (
    get_logger,
    setup_logging,
    log_github_event,
    log_slack_call,
    log_error_with_context,
)
from pullis.utils.resilience import (
    TransientError,
    retry_with_backoff,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "log_github_event",
    "log_slack_call",
    "log_error_with_context",
    "TransientError",
    "retry_with_backoff",
]
