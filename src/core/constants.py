"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Route template reported when no route matched the request
UNKNOWN_ROUTE = "unknown"

# Security and redaction
REDACTED = "[REDACTED]"
