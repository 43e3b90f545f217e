import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from shopnotify.core.logging import initialize_logging
from shopnotify.notifications.factory import build_collaborators, build_fanout_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and the Firebase-backed collaborators before serving requests."""
  from shopnotify.config import get_settings

  # Logging first so collaborator failures are captured.
  settings = get_settings()
  logger = logging.getLogger("shopnotify.core.lifespan")
  initialize_logging(settings)

  # Dependencies read these; None means the backends are unavailable.
  app.state.collaborators = None
  app.state.fanout_service = None
  try:
    collaborators = build_collaborators(settings)
  except Exception:  # noqa: BLE001
    # Keep serving /health; routes that need Firebase answer 503 until configuration is fixed.
    logger.error("Firebase collaborators unavailable; event and role endpoints are disabled.", exc_info=True)
  else:
    app.state.collaborators = collaborators
    app.state.fanout_service = build_fanout_service(collaborators)
    logger.info("Startup complete environment=%s push_enabled=%s", settings.environment, settings.push_notifications_enabled)

  yield
