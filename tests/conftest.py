"""Shared fixtures: in-memory collaborators standing in for Firestore, Auth and FCM."""

from __future__ import annotations

import os

os.environ.setdefault("SHOPNOTIFY_ENV", "test")
os.environ.setdefault("SHOPNOTIFY_EVENT_SECRET", "test-event-secret")

from collections.abc import Mapping, Sequence  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

from shopnotify.notifications.contracts import NotificationRecord, PushOutcome, PushPayload, UserProfile  # noqa: E402
from shopnotify.notifications.firestore_repo import profile_from_document  # noqa: E402


class InMemoryProfileStore:
  def __init__(self, documents: Mapping[str, Mapping[str, Any]] | None = None) -> None:
    self.documents: dict[str, dict[str, Any]] = {user_id: dict(data) for user_id, data in (documents or {}).items()}
    self.get_calls: list[str] = []
    self.role_queries: list[str] = []
    self.fail_with: Exception | None = None

  async def get_by_id(self, user_id: str) -> UserProfile | None:
    self.get_calls.append(user_id)
    if self.fail_with is not None:
      raise self.fail_with
    data = self.documents.get(user_id)
    if data is None:
      return None
    return profile_from_document(user_id, data)

  async def query_by_role(self, role: str) -> list[UserProfile]:
    self.role_queries.append(role)
    if self.fail_with is not None:
      raise self.fail_with
    return [profile_from_document(user_id, data) for user_id, data in self.documents.items() if data.get("role") == role]

  async def merge_update(self, user_id: str, fields: Mapping[str, Any]) -> None:
    if self.fail_with is not None:
      raise self.fail_with
    self.documents.setdefault(user_id, {}).update(fields)


class InMemoryRecordStore:
  def __init__(self) -> None:
    self.records: dict[str, NotificationRecord] = {}
    self.batches: list[list[NotificationRecord]] = []
    self.fail_with: Exception | None = None

  async def batch_insert(self, records: Sequence[NotificationRecord]) -> None:
    if self.fail_with is not None:
      raise self.fail_with
    self.batches.append(list(records))
    for record in records:
      self.records[record.id] = record


class RecordingPushSender:
  def __init__(self, *, failed_tokens: Sequence[str] = (), fail_with: Exception | None = None) -> None:
    self.payloads: list[PushPayload] = []
    self.failed_tokens = tuple(failed_tokens)
    self.fail_with = fail_with

  def send(self, payload: PushPayload) -> PushOutcome:
    self.payloads.append(payload)
    if self.fail_with is not None:
      raise self.fail_with
    failed = tuple(token for token in payload.tokens if token in self.failed_tokens)
    return PushOutcome(success_count=len(payload.tokens) - len(failed), failure_count=len(failed), failed_tokens=failed)


class InMemoryClaimsStore:
  def __init__(self) -> None:
    self.claims: dict[str, dict[str, Any]] = {}
    self.fail_with: Exception | None = None

  async def set_role_claim(self, user_id: str, role: str) -> None:
    if self.fail_with is not None:
      raise self.fail_with
    self.claims[user_id] = {"role": role}


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def user_documents() -> dict[str, dict[str, Any]]:
  return {
    "admin-1": {"role": "admin", "fcmToken": "tok-admin-1", "fullName": "Ada Admin"},
    "admin-2": {"role": "admin", "email": "second-admin@example.com"},
    "staff-1": {"role": "staff", "fcmToken": "tok-staff-1", "name": "Sam"},
    "customer-1": {"role": "customer", "fcmToken": "tok-customer-1", "fullName": "Ana Cruz"},
    "customer-2": {"role": "customer"},
  }


@pytest.fixture
def profile_store(user_documents) -> InMemoryProfileStore:
  return InMemoryProfileStore(user_documents)


@pytest.fixture
def record_store() -> InMemoryRecordStore:
  return InMemoryRecordStore()


@pytest.fixture
def push_sender() -> RecordingPushSender:
  return RecordingPushSender()


@pytest.fixture
def claims_store() -> InMemoryClaimsStore:
  return InMemoryClaimsStore()
