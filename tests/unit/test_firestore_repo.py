from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from firebase_admin import firestore

from shopnotify.notifications.contracts import NotificationRecord, NotificationType
from shopnotify.notifications.firestore_repo import MAX_BATCH_WRITES, FirebaseClaimsStore, FirestoreProfileStore, FirestoreRecordStore, profile_from_document


def _snapshot(doc_id: str, data: dict | None, *, exists: bool = True) -> MagicMock:
  snapshot = MagicMock()
  snapshot.id = doc_id
  snapshot.exists = exists
  snapshot.to_dict.return_value = data
  return snapshot


def _record(record_id: str, user_id: str) -> NotificationRecord:
  return NotificationRecord(id=record_id, user_id=user_id, type=NotificationType.NEW_ORDER, title="New Order Placed", message="Order #A from Ana - ₱1.00", related_entity_id="order-1")


def test_profile_from_document_picks_display_name():
  assert profile_from_document("u1", {"fullName": "Ana Cruz", "name": "Ana"}).display_name == "Ana Cruz"
  assert profile_from_document("u1", {"email": "ana@example.com"}).display_name == "ana@example.com"
  profile = profile_from_document("u1", None)
  assert profile.role is None
  assert profile.push_token is None


@pytest.mark.anyio
async def test_get_by_id_returns_none_for_missing_document():
  client = MagicMock()
  client.collection.return_value.document.return_value.get.return_value = _snapshot("ghost", None, exists=False)

  assert await FirestoreProfileStore(client).get_by_id("ghost") is None
  client.collection.assert_called_with("users")


@pytest.mark.anyio
async def test_query_by_role_filters_on_role_field():
  client = MagicMock()
  query = client.collection.return_value.where.return_value
  query.stream.return_value = [_snapshot("admin-1", {"role": "admin", "fcmToken": "tok"})]

  profiles = await FirestoreProfileStore(client, collection="people").query_by_role("admin")

  assert [profile.push_token for profile in profiles] == ["tok"]
  client.collection.assert_called_with("people")
  field_filter = client.collection.return_value.where.call_args.kwargs["filter"]
  assert field_filter.field_path == "role"
  assert field_filter.value == "admin"


@pytest.mark.anyio
async def test_merge_update_uses_merge_set():
  client = MagicMock()

  await FirestoreProfileStore(client).merge_update("u1", {"role": "staff"})

  client.collection.return_value.document.return_value.set.assert_called_once_with({"role": "staff"}, merge=True)


@pytest.mark.anyio
async def test_batch_insert_commits_once_with_server_timestamp():
  client = MagicMock()
  batch = client.batch.return_value

  await FirestoreRecordStore(client).batch_insert([_record("r1", "admin-1"), _record("r2", "staff-1")])

  assert batch.set.call_count == 2
  batch.commit.assert_called_once()
  document = batch.set.call_args_list[0].args[1]
  assert document["userId"] == "admin-1"
  assert document["read"] is False
  assert document["createdAt"] is firestore.SERVER_TIMESTAMP
  client.collection.return_value.document.assert_any_call("r1")


@pytest.mark.anyio
async def test_batch_insert_rejects_oversized_batches():
  client = MagicMock()
  records = [_record(f"r{index}", f"u{index}") for index in range(MAX_BATCH_WRITES + 1)]

  with pytest.raises(ValueError):
    await FirestoreRecordStore(client).batch_insert(records)

  client.batch.assert_not_called()


@pytest.mark.anyio
async def test_claims_store_replaces_claims(monkeypatch):
  set_claims = MagicMock()
  monkeypatch.setattr("shopnotify.notifications.firestore_repo.auth.set_custom_user_claims", set_claims)

  await FirebaseClaimsStore().set_role_claim("u1", "admin")

  set_claims.assert_called_once_with("u1", {"role": "admin"}, app=None)
