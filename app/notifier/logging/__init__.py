"""Structured logging for the notifier.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_logger(): Get a logger instance with a specific name
    - get_module_logger(): Get a logger for the calling module
    - bind_notification_context(): Context manager for per-request logging
    - get_correlation_id(), set_correlation_id(), clear_request_context()

Formatters:
    - add_app_info(), mask_sensitive_data(), truncate_large_values(),
      add_environment_info()
"""

from notifier.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)

from notifier.logging.context import (
    bind_notification_context,
    get_correlation_id,
    set_correlation_id,
    clear_request_context,
)

from notifier.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
    add_environment_info,
    SENSITIVE_PATTERNS,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "get_module_logger",
    "bind_notification_context",
    "get_correlation_id",
    "set_correlation_id",
    "clear_request_context",
    "add_app_info",
    "mask_sensitive_data",
    "truncate_large_values",
    "add_environment_info",
    "SENSITIVE_PATTERNS",
]
