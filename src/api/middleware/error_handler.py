"""Global exception handlers for the FastAPI application.

Every failure that reaches the HTTP boundary is turned into exactly one
taxonomy member and rendered through ``http_response_parts``, so the status
and public message depend only on the error kind. The full internal detail
is logged, sanitized of sensitive keys; 5xx bodies carry only the generic
label of their kind.
"""

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from src.api.constants import HTTP_500_INTERNAL_SERVER_ERROR
from src.api.schemas.errors import ErrorResponse, ServiceInfo
from src.api.utils.responses import ORJSONResponse
from src.core.config import Settings
from src.core.context import RequestContext, generate_request_id
from src.core.error_context import sanitize_error_context
from src.core.exceptions import (
    BackplaneError,
    SerializationError,
    Severity,
    ValidationError,
    http_response_parts,
)
from src.infrastructure.errors import classify

JSON_INVALID_ERROR_TYPE = "json_invalid"


def get_service_info(settings: Settings) -> ServiceInfo:
    """Create ServiceInfo from application settings.

    Args:
        settings: Application settings

    Returns:
        ServiceInfo: Instance with current service metadata
    """
    return ServiceInfo(
        name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or generate_request_id()


def _error_response(
    request: Request,
    *,
    status_code: int,
    error_code: str,
    message: str,
    severity: str,
    details: dict[str, object] | None = None,
) -> Response:
    settings: Settings = request.app.state.settings
    body = ErrorResponse(
        error=message,
        error_code=error_code,
        details=details if status_code < HTTP_500_INTERNAL_SERVER_ERROR else None,
        correlation_id=RequestContext.get_correlation_id(),
        request_id=_request_id(request),
        severity=severity,
        service_info=get_service_info(settings),
    )
    return ORJSONResponse(
        status_code=status_code, content=body.model_dump(mode="json")
    )


def render_error(request: Request, error: BackplaneError) -> Response:
    """Log a taxonomy member and convert it to its HTTP response.

    Args:
        request: The request that failed
        error: The taxonomy member to render

    Returns:
        Response: ORJSONResponse whose status and message follow the kind
    """
    status_code, public_message = http_response_parts(error)

    error_context = sanitize_error_context(
        error,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
            "error_code": error.error_code,
            "fingerprint": error.fingerprint,
            "details": error.details or None,
        },
    )
    level = "ERROR" if error.should_alert else "WARNING"
    logger.log(
        level,
        "Handling {}: {}",
        type(error).__name__,
        error.message,
        **error_context,
    )

    return _error_response(
        request,
        status_code=status_code,
        error_code=error.error_code,
        message=public_message,
        severity=error.severity.value,
        details=error.details or None,
    )


async def backplane_error_handler(request: Request, exc: Exception) -> Response:
    """Handle taxonomy members raised by handlers and dependencies.

    Raises:
        TypeError: If exc is not a BackplaneError instance
    """
    if not isinstance(exc, BackplaneError):
        raise TypeError(f"Expected BackplaneError, got {type(exc).__name__}")
    return render_error(request, exc)


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle FastAPI RequestValidationError.

    A body that is not valid JSON becomes ``SerializationError``; anything
    else becomes ``ValidationError`` with per-field messages. Both are 400.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    errors = list(exc.errors())
    json_errors = [e for e in errors if e.get("type") == JSON_INVALID_ERROR_TYPE]
    error: BackplaneError
    if json_errors:
        reason = json_errors[0].get("ctx", {}).get("error") or json_errors[0].get(
            "msg", "invalid JSON"
        )
        error = SerializationError(
            f"{SerializationError.description}: {reason}", cause=exc
        )
    else:
        error = ValidationError.from_errors(errors, loc_offset=1, cause=exc)

    return render_error(request, error)


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException, keeping its own status code.

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    severity = (
        Severity.HIGH
        if exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR
        else Severity.LOW
    )
    try:
        error_code = HTTPStatus(exc.status_code).name
    except ValueError:
        error_code = "HTTP_ERROR"

    logger.warning(
        "HTTP exception",
        **sanitize_error_context(
            exc,
            {
                "status": exc.status_code,
                "request_method": request.method,
                "request_path": str(request.url.path),
            },
        ),
    )

    response = _error_response(
        request,
        status_code=exc.status_code,
        error_code=error_code,
        message=str(exc.detail),
        severity=severity.value,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Classify anything else that escaped the handlers.

    Args:
        request: The request that failed
        exc: The unhandled exception

    Returns:
        Response: The response of the taxonomy member ``classify`` picked
    """
    logger.opt(exception=exc).debug("Unhandled exception reached the boundary")
    return render_error(request, classify(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(BackplaneError, backplane_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
