import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shopnotify.services.roles import RoleAssignmentError

logger = logging.getLogger("uvicorn.error")

# Callable error statuses mirror the HTTP mapping used by Firebase callable functions.
_CALLABLE_HTTP_STATUS: dict[str, int] = {
  "UNAUTHENTICATED": status.HTTP_401_UNAUTHORIZED,
  "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
  "INVALID_ARGUMENT": status.HTTP_400_BAD_REQUEST,
  "INTERNAL": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build an error payload that never carries internal diagnostics."""
  payload: dict[str, Any] = {"detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Drop raw input values so logs and responses do not echo request bodies."""
  # Keep type, loc and msg; drop anything derived from the payload.
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key not in {"input", "ctx"}}
    sanitized.append(scrubbed)
  return sanitized


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Catch-all for unhandled errors."""
  # Correlate the response with the request log line.
  request_id = getattr(request.state, "request_id", None)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=exc)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Return 422 with validation errors stripped of request input."""
  request_id = getattr(request.state, "request_id", None)
  sanitized_errors = _sanitize_validation_errors(list(exc.errors()))
  logger.warning("Request validation failed request_id=%s path=%s errors=%s", request_id, request.url.path, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions, hiding the detail of 5xx responses."""
  request_id = getattr(request.state, "request_id", None)
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  # Deferred import: settings are resolved at request time.
  from shopnotify.config import get_settings

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)
  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=getattr(exc, "headers", None))


async def role_assignment_exception_handler(request: Request, exc: RoleAssignmentError) -> JSONResponse:
  """Render a typed role-assignment failure in the callable error envelope."""
  # Unknown statuses fall back to 500 like INTERNAL.
  http_status = _CALLABLE_HTTP_STATUS.get(exc.status, status.HTTP_500_INTERNAL_SERVER_ERROR)
  logger.info("Callable error path=%s status=%s message=%s", request.url.path, exc.status, exc.message)
  return JSONResponse(status_code=http_status, content={"error": {"status": exc.status, "message": exc.message}})
