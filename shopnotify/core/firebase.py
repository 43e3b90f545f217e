"""Firebase Admin SDK bootstrap and thin wrappers used by the adapters."""

from __future__ import annotations

import logging
from typing import Any

import firebase_admin
from firebase_admin import auth, credentials, firestore
from google.cloud.firestore import Client as FirestoreClient

from shopnotify.config import Settings, get_settings

logger = logging.getLogger(__name__)


def initialize_firebase(settings: Settings | None = None) -> firebase_admin.App | None:
  """Initialize the default Firebase app once; return None when Firebase is not configured."""
  # firebase_admin keeps a registry of initialized apps; reuse the default one.
  if firebase_admin._apps:
    return firebase_admin.get_app()

  settings = settings or get_settings()
  if not settings.firebase_project_id:
    logger.warning("Firebase Project ID not set. Firebase Admin SDK not initialized.")
    return None

  options = {"projectId": settings.firebase_project_id}
  if settings.firebase_service_account_json_path:
    cred = credentials.Certificate(settings.firebase_service_account_json_path)
    app = firebase_admin.initialize_app(cred, options)
  else:
    # Application Default Credentials (Cloud Run, Functions, gcloud auth).
    app = firebase_admin.initialize_app(options=options)
  logger.info("Firebase Admin SDK initialized for project %s.", settings.firebase_project_id)
  return app


def get_firestore_client(settings: Settings | None = None) -> FirestoreClient:
  """Return a Firestore client, initializing Firebase lazily."""
  # Initializes Firebase on first use.
  app = initialize_firebase(settings)
  if app is None:
    raise RuntimeError("Firebase is not configured; set FIREBASE_PROJECT_ID.")
  return firestore.client(app)


def verify_id_token(id_token: str) -> dict[str, Any] | None:
  """Verify a Firebase ID token and return its decoded claims, or None when invalid."""
  # Without a Firebase app nobody can be authenticated.
  if initialize_firebase() is None:
    return None

  # Invalid, expired and revoked tokens all read as "no caller".
  try:
    return auth.verify_id_token(id_token)
  except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, auth.CertificateFetchError) as exc:
    logger.info("ID token verification failed: %s", exc)
    return None
