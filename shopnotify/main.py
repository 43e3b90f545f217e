from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from shopnotify.api.routes import events, roles
from shopnotify.config import get_settings
from shopnotify.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler, role_assignment_exception_handler
from shopnotify.core.lifespan import lifespan
from shopnotify.core.middleware import RequestLoggingMiddleware
from shopnotify.services.roles import RoleAssignmentError

settings = get_settings()

app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

if settings.allowed_origins:
  app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["POST", "OPTIONS"], allow_headers=["content-type", "authorization"])

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(RoleAssignmentError, role_assignment_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok"}


app.include_router(events.router, prefix="/internal", tags=["events"])
app.include_router(roles.router, prefix="/callable", tags=["roles"])
