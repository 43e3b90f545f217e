"""Firestore and Firebase Auth backed collaborators."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from firebase_admin import auth, firestore
from google.cloud.firestore import Client as FirestoreClient
from google.cloud.firestore_v1.base_query import FieldFilter
from starlette.concurrency import run_in_threadpool

from shopnotify.notifications.contracts import NotificationRecord, UserProfile

logger = logging.getLogger(__name__)

# Firestore rejects batches above this many writes.
MAX_BATCH_WRITES = 500


def profile_from_document(user_id: str, data: Mapping[str, Any] | None) -> UserProfile:
  """Build a profile from a users document, tolerating missing fields."""
  data = data or {}
  # Chat titles prefer the full name; email is the last resort.
  display_name = data.get("fullName") or data.get("name") or data.get("email")
  role = data.get("role")
  token = data.get("fcmToken")
  return UserProfile(user_id=user_id, role=str(role) if role else None, push_token=str(token) if token else None, display_name=str(display_name) if display_name else None)


class FirestoreProfileStore:
  """Read profiles from the users collection and merge role updates into them."""

  def __init__(self, client: FirestoreClient, *, collection: str = "users") -> None:
    self._client = client
    self._collection = collection

  async def get_by_id(self, user_id: str) -> UserProfile | None:
    # Firestore SDK calls are blocking; keep them off the event loop.
    return await run_in_threadpool(self._get_by_id_sync, user_id)

  def _get_by_id_sync(self, user_id: str) -> UserProfile | None:
    """Blocking read of one users document."""
    snapshot = self._client.collection(self._collection).document(user_id).get()
    if not snapshot.exists:
      return None
    return profile_from_document(snapshot.id, snapshot.to_dict())

  async def query_by_role(self, role: str) -> list[UserProfile]:
    return await run_in_threadpool(self._query_by_role_sync, role)

  def _query_by_role_sync(self, role: str) -> list[UserProfile]:
    """Blocking equality query on the `role` field."""
    query = self._client.collection(self._collection).where(filter=FieldFilter("role", "==", role))
    return [profile_from_document(snapshot.id, snapshot.to_dict()) for snapshot in query.stream()]

  async def merge_update(self, user_id: str, fields: Mapping[str, Any]) -> None:
    await run_in_threadpool(self._merge_update_sync, user_id, dict(fields))

  def _merge_update_sync(self, user_id: str, fields: dict[str, Any]) -> None:
    """Blocking merge write; creates the document when missing."""
    self._client.collection(self._collection).document(user_id).set(fields, merge=True)


class FirestoreRecordStore:
  """Write notification records with one atomic WriteBatch per event."""

  def __init__(self, client: FirestoreClient, *, collection: str = "notifications") -> None:
    self._client = client
    self._collection = collection

  async def batch_insert(self, records: Sequence[NotificationRecord]) -> None:
    if not records:
      return
    if len(records) > MAX_BATCH_WRITES:
      # A single batch is the atomicity boundary; splitting would allow partial writes.
      raise ValueError(f"Cannot write {len(records)} notifications atomically (limit {MAX_BATCH_WRITES}).")
    await run_in_threadpool(self._batch_insert_sync, list(records))

  def _batch_insert_sync(self, records: list[NotificationRecord]) -> None:
    """Write all records in one WriteBatch so the event is all-or-nothing."""
    collection = self._client.collection(self._collection)
    batch = self._client.batch()
    for record in records:
      document = record.to_document()
      # Let Firestore stamp the time so ordering follows the server clock.
      if document["createdAt"] is None:
        document["createdAt"] = firestore.SERVER_TIMESTAMP
      # `set` on a deterministic id keeps redelivered events from duplicating records.
      batch.set(collection.document(record.id), document)
    batch.commit()
    logger.debug("Committed %d notification records.", len(records))


class FirebaseClaimsStore:
  """Custom-claims store backed by Firebase Auth."""

  def __init__(self, app: Any = None) -> None:
    self._app = app

  async def set_role_claim(self, user_id: str, role: str) -> None:
    # Replaces the whole claims object with `{"role": role}`.
    await run_in_threadpool(auth.set_custom_user_claims, user_id, {"role": role}, app=self._app)
