"""Persist in-app records, then send one batched push."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from starlette.concurrency import run_in_threadpool

from shopnotify.notifications.contracts import (
  DispatchResult,
  NotificationContent,
  NotificationProviderError,
  NotificationRecord,
  NotifyDecision,
  PushOutcome,
  PushPayload,
  PushSender,
  RecipientRef,
  RecordStore,
  notification_record_id,
)

logger = logging.getLogger(__name__)


def build_records(decision: NotifyDecision, recipients: Sequence[RecipientRef], content: NotificationContent) -> list[NotificationRecord]:
  """One unread record per recipient; `created_at` is left for the store to stamp."""
  return [
    NotificationRecord(
      id=notification_record_id(decision, recipient.user_id),
      user_id=recipient.user_id,
      type=decision.notification_type,
      title=content.title,
      message=content.body,
      related_entity_id=decision.event.entity_id,
    )
    for recipient in recipients
  ]


class DispatchCoordinator:
  """Two-phase delivery: the record batch commits before any push is attempted."""

  def __init__(self, *, record_store: RecordStore, push_sender: PushSender) -> None:
    self._record_store = record_store
    self._push_sender = push_sender

  async def dispatch(self, decision: NotifyDecision, recipients: Sequence[RecipientRef], content: NotificationContent, tokens: Sequence[tuple[str, str]]) -> DispatchResult:
    # Phase 1: every recipient gets an in-app record, whatever happens to the push.
    records = build_records(decision, recipients, content)
    if records:
      # Failure here aborts the event before any push goes out.
      await self._record_store.batch_insert(records)

    # Recipients without a device still have their in-app record.
    if not tokens:
      logger.info("No push tokens for %s %s; wrote %d in-app records.", decision.notification_type.value, decision.event.entity_id, len(records))
      return DispatchResult(records_written=len(records), push_sent=0, push_failed=0)

    # Phase 2: one payload for all tokens; the sender splits it into transport batches.
    payload = PushPayload(tokens=tuple(token for _, token in tokens), title=content.title, body=content.body, data=dict(content.data))
    outcome = await self._send_push(payload)

    # Failed tokens are reported, not retried.
    if outcome.failure_count:
      logger.warning("Push for %s %s partially failed sent=%d failed=%d", decision.notification_type.value, decision.event.entity_id, outcome.success_count, outcome.failure_count)
    else:
      logger.info("Push for %s %s sent to %d tokens.", decision.notification_type.value, decision.event.entity_id, outcome.success_count)

    return DispatchResult(records_written=len(records), push_sent=outcome.success_count, push_failed=outcome.failure_count)

  async def _send_push(self, payload: PushPayload) -> PushOutcome:
    """Send the batch; transport errors count every token as failed instead of raising."""
    try:
      # The FCM SDK is blocking.
      return await run_in_threadpool(self._push_sender.send, payload)
    except NotificationProviderError as exc:
      logger.error("Push delivery failed (provider error): %s", exc)
    except Exception as exc:  # noqa: BLE001
      logger.error("Push delivery failed: %s", exc, exc_info=True)
    return PushOutcome(success_count=0, failure_count=len(payload.tokens), failed_tokens=payload.tokens)
