"""Factory helpers for notification services."""

from __future__ import annotations

from dataclasses import dataclass

from shopnotify.config import Settings
from shopnotify.core.firebase import get_firestore_client, initialize_firebase
from shopnotify.notifications.contracts import ClaimsStore, ProfileStore, PushSender, RecordStore
from shopnotify.notifications.firestore_repo import FirebaseClaimsStore, FirestoreProfileStore, FirestoreRecordStore
from shopnotify.notifications.push_sender import FcmPushSender, NullPushSender
from shopnotify.notifications.service import NotificationFanoutService


@dataclass(frozen=True)
class Collaborators:
  """Backends shared by the fan-out engine and role assignment."""

  profile_store: ProfileStore
  record_store: RecordStore
  claims_store: ClaimsStore
  push_sender: PushSender


def build_collaborators(settings: Settings) -> Collaborators:
  """Construct Firebase-backed collaborators from settings."""
  # Both calls reuse the default Firebase app once it exists.
  app = initialize_firebase(settings)
  client = get_firestore_client(settings)

  # With push disabled, in-app records are still written.
  if settings.push_notifications_enabled:
    push_sender: PushSender = FcmPushSender(app=app, dry_run=settings.push_dry_run)
  else:
    push_sender = NullPushSender()

  # Profiles and claims share the app so role updates hit the same project.
  return Collaborators(
    profile_store=FirestoreProfileStore(client, collection=settings.users_collection),
    record_store=FirestoreRecordStore(client, collection=settings.notifications_collection),
    claims_store=FirebaseClaimsStore(app),
    push_sender=push_sender,
  )


def build_fanout_service(collaborators: Collaborators) -> NotificationFanoutService:
  return NotificationFanoutService(profile_store=collaborators.profile_store, record_store=collaborators.record_store, push_sender=collaborators.push_sender)
