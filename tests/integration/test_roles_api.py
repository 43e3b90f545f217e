from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from shopnotify.api.deps import get_collaborators
from shopnotify.main import app
from shopnotify.notifications.factory import Collaborators
from shopnotify.notifications.push_sender import NullPushSender

AUTH = {"Authorization": "Bearer id-token"}


@pytest.fixture
def collaborators(profile_store, record_store, claims_store) -> Collaborators:
  return Collaborators(profile_store=profile_store, record_store=record_store, claims_store=claims_store, push_sender=NullPushSender())


@pytest.fixture
def client(collaborators):
  app.dependency_overrides[get_collaborators] = lambda: collaborators
  yield TestClient(app, raise_server_exceptions=False)
  app.dependency_overrides.clear()


@pytest.fixture
def token_claims(monkeypatch):
  verify = MagicMock(return_value={"uid": "admin-1", "role": "admin"})
  monkeypatch.setattr("shopnotify.core.security.verify_id_token", verify)
  return verify


def test_admin_assigns_role(client, token_claims, claims_store, profile_store):
  response = client.post("/callable/setUserRole", json={"data": {"uid": "customer-1", "role": "staff"}}, headers=AUTH)

  assert response.status_code == 200
  assert response.json() == {"result": {"success": True, "message": "Role 'staff' assigned to user customer-1"}}
  assert claims_store.claims["customer-1"] == {"role": "staff"}
  assert profile_store.documents["customer-1"]["role"] == "staff"
  token_claims.assert_called_once_with("id-token")


def test_missing_token_is_unauthenticated(client, claims_store):
  response = client.post("/callable/setUserRole", json={"data": {"uid": "customer-1", "role": "staff"}})

  assert response.status_code == 401
  assert response.json() == {"error": {"status": "UNAUTHENTICATED", "message": "You must be authenticated to call this function."}}
  assert claims_store.claims == {}


def test_invalid_token_is_unauthenticated(client, monkeypatch):
  monkeypatch.setattr("shopnotify.core.security.verify_id_token", MagicMock(return_value=None))

  response = client.post("/callable/setUserRole", json={"data": {"uid": "customer-1", "role": "staff"}}, headers=AUTH)

  assert response.status_code == 401


def test_staff_caller_is_denied(client, token_claims, claims_store):
  token_claims.return_value = {"uid": "staff-1", "role": "staff"}

  response = client.post("/callable/setUserRole", json={"data": {"uid": "customer-1", "role": "admin"}}, headers=AUTH)

  assert response.status_code == 403
  assert response.json()["error"]["status"] == "PERMISSION_DENIED"
  assert claims_store.claims == {}


def test_invalid_role_is_rejected(client, token_claims):
  response = client.post("/callable/setUserRole", json={"data": {"uid": "customer-1", "role": "owner"}}, headers=AUTH)

  assert response.status_code == 400
  assert response.json()["error"] == {"status": "INVALID_ARGUMENT", "message": "Invalid role. Allowed roles are: admin, staff, customer"}


def test_missing_arguments_are_rejected(client, token_claims):
  response = client.post("/callable/setUserRole", json={"data": {"uid": "customer-1"}}, headers=AUTH)

  assert response.status_code == 400
  assert response.json()["error"]["message"] == "You must provide both uid and role"


def test_store_failure_is_internal(client, token_claims, claims_store):
  claims_store.fail_with = RuntimeError("auth backend unavailable")

  response = client.post("/callable/setUserRole", json={"data": {"uid": "customer-1", "role": "staff"}}, headers=AUTH)

  assert response.status_code == 500
  assert response.json() == {"error": {"status": "INTERNAL", "message": "Failed to assign role. Check server logs."}}


@pytest.mark.parametrize("role", [5, " admin ", "ADMIN"])
def test_role_values_are_not_coerced(client, token_claims, claims_store, role):
  response = client.post("/callable/setUserRole", json={"data": {"uid": "customer-1", "role": role}}, headers=AUTH)

  assert response.status_code == 400
  assert response.json()["error"]["message"] == "Invalid role. Allowed roles are: admin, staff, customer"
  assert claims_store.claims == {}
