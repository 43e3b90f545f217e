"""Shared FastAPI dependencies for the collaborators built at startup."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from shopnotify.notifications.factory import Collaborators
from shopnotify.notifications.service import NotificationFanoutService


def get_collaborators(request: Request) -> Collaborators:
  """Collaborators built by the lifespan; 503 when Firebase failed to initialize."""
  collaborators = getattr(request.app.state, "collaborators", None)
  if collaborators is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Firebase backends are not configured.")
  return collaborators


def get_fanout_service(request: Request) -> NotificationFanoutService:
  """Fan-out service built by the lifespan; 503 when Firebase failed to initialize."""
  service = getattr(request.app.state, "fanout_service", None)
  if service is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Firebase backends are not configured.")
  return service
