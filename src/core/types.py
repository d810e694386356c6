"""Type aliases shared across the application."""

from typing import Any

# Context dictionary for error details and debugging information
type ErrorContext = dict[str, Any]
