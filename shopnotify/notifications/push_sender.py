"""Push notification delivery implementations."""

from __future__ import annotations

import logging
from typing import Any

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from shopnotify.notifications.contracts import NotificationProviderError, PushOutcome, PushPayload, PushSender

logger = logging.getLogger(__name__)

# FCM accepts at most this many messages per batch request.
FCM_BATCH_LIMIT = 500


class FcmPushSender(PushSender):
  """Firebase Cloud Messaging sender that reports per-token outcomes."""

  def __init__(self, *, app: Any = None, dry_run: bool = False) -> None:
    self._app = app
    self._dry_run = dry_run

  def _build_messages(self, tokens: list[str], payload: PushPayload) -> list[messaging.Message]:
    """Build one message per token; FCM data values must be strings."""
    notification = messaging.Notification(title=payload.title, body=payload.body)
    data = {str(key): str(value) for key, value in payload.data.items()}
    return [messaging.Message(token=token, notification=notification, data=data) for token in tokens]

  def send(self, payload: PushPayload) -> PushOutcome:
    """Send one logical batch; the transport limit is handled here rather than by callers.

    A batch request that fails outright marks its own tokens as failed and the
    remaining batches are still sent. Only when no batch could be sent at all is
    the failure raised as a provider error.
    """
    tokens = list(payload.tokens)

    success_count = 0
    failed_tokens: list[str] = []
    transport_errors: list[firebase_exceptions.FirebaseError] = []
    batch_count = 0
    for start in range(0, len(tokens), FCM_BATCH_LIMIT):
      chunk = tokens[start : start + FCM_BATCH_LIMIT]
      batch_count += 1
      try:
        response = messaging.send_each(self._build_messages(chunk, payload), dry_run=self._dry_run, app=self._app)
      except firebase_exceptions.FirebaseError as exc:
        # Keep going: earlier batches were already delivered and later ones may succeed.
        logger.error("FCM batch request failed tokens=%d code=%s: %s", len(chunk), exc.code, exc)
        transport_errors.append(exc)
        failed_tokens.extend(chunk)
        continue

      success_count += response.success_count
      # Responses come back in message order.
      for token, send_response in zip(chunk, response.responses, strict=True):
        if not send_response.success:
          failed_tokens.append(token)
          logger.debug("FCM rejected token_prefix=%s error=%s", token[:8], send_response.exception)

    if transport_errors and len(transport_errors) == batch_count:
      last_error = transport_errors[-1]
      raise NotificationProviderError(f"FCM batch send failed (code={last_error.code}): {last_error}") from last_error

    return PushOutcome(success_count=success_count, failure_count=len(failed_tokens), failed_tokens=tuple(failed_tokens))


class NullPushSender(PushSender):
  """No-op push sender used when push notifications are disabled or unconfigured."""

  def send(self, payload: PushPayload) -> PushOutcome:
    """Drop the push while recording a debug log."""
    logger.debug("Push notifications disabled; dropping push for %d tokens", len(payload.tokens))
    return PushOutcome(success_count=0, failure_count=0)
