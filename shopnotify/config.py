"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from shopnotify.utils.env import default_env_path, load_env_file

# Real environment variables win over .env entries.
load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the shopnotify service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  push_notifications_enabled: bool
  push_dry_run: bool
  users_collection: str
  notifications_collection: str
  event_secret: str | None


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  """Treat unset and blank variables alike."""
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  # CORS is optional here: the event endpoint is server-to-server and the callable is usually proxied.
  if not raw:
    return ()

  origins = tuple(origin.strip() for origin in raw.split(",") if origin.strip())
  if "*" in origins:
    raise ValueError("SHOPNOTIFY_ALLOWED_ORIGINS must not include wildcard origins.")

  return origins


def _collection_name(env_name: str, default: str) -> str:
  """Read a collection name; nested paths are rejected."""
  value = (os.getenv(env_name) or default).strip()
  if not value or "/" in value:
    raise ValueError(f"{env_name} must be a top-level Firestore collection name.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("SHOPNOTIFY_ENV", "development").lower()
  debug = _parse_bool(os.getenv("SHOPNOTIFY_DEBUG"))

  log_max_bytes = int(os.getenv("SHOPNOTIFY_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("SHOPNOTIFY_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("SHOPNOTIFY_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("SHOPNOTIFY_LOG_BACKUP_COUNT must be zero or a positive integer.")

  push_notifications_enabled = _parse_bool(os.getenv("SHOPNOTIFY_PUSH_NOTIFICATIONS_ENABLED", "true"))
  firebase_project_id = _optional_str(os.getenv("FIREBASE_PROJECT_ID"))

  # FCM needs an initialized Firebase app; refuse a config that can never deliver.
  if push_notifications_enabled and environment in {"production", "prod"} and not firebase_project_id:
    raise ValueError("FIREBASE_PROJECT_ID must be set when push notifications are enabled in production.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("SHOPNOTIFY_ALLOWED_ORIGINS")),
    log_dir=(os.getenv("SHOPNOTIFY_LOG_DIR") or "logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("SHOPNOTIFY_LOG_HTTP_4XX")),
    firebase_project_id=firebase_project_id,
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    push_notifications_enabled=push_notifications_enabled,
    push_dry_run=_parse_bool(os.getenv("SHOPNOTIFY_PUSH_DRY_RUN")),
    users_collection=_collection_name("SHOPNOTIFY_USERS_COLLECTION", "users"),
    notifications_collection=_collection_name("SHOPNOTIFY_NOTIFICATIONS_COLLECTION", "notifications"),
    event_secret=_optional_str(os.getenv("SHOPNOTIFY_EVENT_SECRET")),
  )
