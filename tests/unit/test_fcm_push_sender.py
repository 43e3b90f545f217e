from __future__ import annotations

import warnings
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from firebase_admin import exceptions as firebase_exceptions

from shopnotify.notifications.contracts import NotificationProviderError, PushPayload
from shopnotify.notifications.push_sender import FCM_BATCH_LIMIT, FcmPushSender, NullPushSender

SEND_EACH = "shopnotify.notifications.push_sender.messaging.send_each"


def _batch_response(*successes: bool) -> SimpleNamespace:
  responses = [SimpleNamespace(success=ok, exception=None if ok else RuntimeError("unregistered")) for ok in successes]
  return SimpleNamespace(success_count=sum(successes), failure_count=len(successes) - sum(successes), responses=responses)


def _all_delivered(messages, dry_run=False, app=None):
  return _batch_response(*([True] * len(messages)))


def test_send_reports_failed_tokens(monkeypatch):
  send_mock = MagicMock(return_value=_batch_response(True, False, True))
  monkeypatch.setattr(SEND_EACH, send_mock)
  sender = FcmPushSender(dry_run=True)

  outcome = sender.send(PushPayload(tokens=("a", "b", "c"), title="Order Shipped", body="Your order has been shipped!", data={"type": "order_status_update", "orderId": "o-1"}))

  assert outcome.success_count == 2
  assert outcome.failure_count == 1
  assert outcome.failed_tokens == ("b",)
  messages = send_mock.call_args.args[0]
  assert [message.token for message in messages] == ["a", "b", "c"]
  assert messages[0].notification.title == "Order Shipped"
  assert messages[0].data == {"type": "order_status_update", "orderId": "o-1"}
  assert send_mock.call_args.kwargs["dry_run"] is True


def test_send_builds_messages_without_deprecation_warnings(monkeypatch):
  monkeypatch.setattr(SEND_EACH, MagicMock(side_effect=_all_delivered))

  with warnings.catch_warnings():
    warnings.simplefilter("error", DeprecationWarning)
    outcome = FcmPushSender().send(PushPayload(tokens=("a", "b"), title="t", body="b", data={"orderId": "o-1"}))

  assert outcome.success_count == 2


def test_send_chunks_large_batches(monkeypatch):
  calls: list[list[str]] = []

  def _send(messages, dry_run=False, app=None):
    calls.append([message.token for message in messages])
    return _all_delivered(messages)

  monkeypatch.setattr(SEND_EACH, _send)
  tokens = tuple(f"tok-{index}" for index in range(FCM_BATCH_LIMIT + 3))

  outcome = FcmPushSender().send(PushPayload(tokens=tokens, title="t", body="b"))

  assert [len(chunk) for chunk in calls] == [FCM_BATCH_LIMIT, 3]
  assert outcome.success_count == len(tokens)
  assert outcome.failure_count == 0


def test_failed_batch_keeps_earlier_deliveries(monkeypatch):
  responses = iter([None, firebase_exceptions.UnavailableError("service unavailable")])

  def _send(messages, dry_run=False, app=None):
    error = next(responses)
    if error is not None:
      raise error
    return _all_delivered(messages)

  monkeypatch.setattr(SEND_EACH, _send)
  tokens = tuple(f"tok-{index}" for index in range(FCM_BATCH_LIMIT + 100))

  outcome = FcmPushSender().send(PushPayload(tokens=tokens, title="t", body="b"))

  assert outcome.success_count == FCM_BATCH_LIMIT
  assert outcome.failure_count == 100
  assert outcome.failed_tokens == tokens[FCM_BATCH_LIMIT:]


def test_failed_first_batch_does_not_stop_later_batches(monkeypatch):
  responses = iter([firebase_exceptions.UnavailableError("service unavailable"), None])

  def _send(messages, dry_run=False, app=None):
    error = next(responses)
    if error is not None:
      raise error
    return _all_delivered(messages)

  monkeypatch.setattr(SEND_EACH, _send)
  tokens = tuple(f"tok-{index}" for index in range(FCM_BATCH_LIMIT + 10))

  outcome = FcmPushSender().send(PushPayload(tokens=tokens, title="t", body="b"))

  assert outcome.success_count == 10
  assert outcome.failure_count == FCM_BATCH_LIMIT


def test_firebase_error_on_every_batch_is_wrapped(monkeypatch):
  error = firebase_exceptions.UnavailableError("service unavailable")
  monkeypatch.setattr(SEND_EACH, MagicMock(side_effect=error))

  with pytest.raises(NotificationProviderError):
    FcmPushSender().send(PushPayload(tokens=("a",), title="t", body="b"))


def test_null_sender_drops_push():
  outcome = NullPushSender().send(PushPayload(tokens=("a", "b"), title="t", body="b"))

  assert outcome.success_count == 0
  assert outcome.failure_count == 0
