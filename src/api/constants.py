"""API-related constants."""

# HTTP status boundaries
HTTP_400_BAD_REQUEST = 400
HTTP_500_INTERNAL_SERVER_ERROR = 500

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Failure classifications reported by request logging
CLIENT_ERROR = "client_error"
SERVER_ERROR = "server_error"

# Span opened around every request
REQUEST_SPAN_NAME = "http_request"

# Versioned API prefix
API_V1_PREFIX = "/api/v1"
