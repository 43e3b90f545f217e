"""Notification fan-out for record change events."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from shopnotify.notifications.audience import AudienceResolver
from shopnotify.notifications.classifier import classify
from shopnotify.notifications.contracts import ChangeEvent, DispatchResult, EntityType, NotificationType, NotifyDecision, ProfileStore, PushSender, RecordStore, UserProfile
from shopnotify.notifications.dispatch import DispatchCoordinator
from shopnotify.notifications.templates import render
from shopnotify.notifications.tokens import TokenCollector

logger = logging.getLogger(__name__)

# Flows whose faults are re-raised so the trigger host marks the event failed and redelivers it.
_REDELIVERED_ON_FAULT = frozenset({NotificationType.NEW_QUOTATION})


class NotificationFanoutService:
  """Turn one change event into per-recipient records and a batched push."""

  def __init__(self, *, profile_store: ProfileStore, record_store: RecordStore, push_sender: PushSender) -> None:
    self._profile_store = profile_store
    self._audience = AudienceResolver(profile_store=profile_store)
    self._tokens = TokenCollector(profile_store=profile_store)
    self._dispatcher = DispatchCoordinator(record_store=record_store, push_sender=push_sender)

  async def handle(self, event: ChangeEvent) -> DispatchResult | None:
    """Process `event`; returns the dispatch result, or None when nothing was sent.

    Faults are logged and swallowed, except in the quotation-creation flow where
    they propagate to the caller.
    """
    decision = classify(event)
    if decision is None:
      logger.debug("Skipping %s %s: change is not notification-worthy.", event.entity_type.value, event.entity_id)
      return None

    # Fault policy is per flow: see _REDELIVERED_ON_FAULT.
    try:
      return await self._fan_out(decision)
    except Exception:
      logger.error("Error creating %s notifications for %s %s", decision.notification_type.value, event.entity_type.value, event.entity_id, exc_info=True)
      if decision.notification_type in _REDELIVERED_ON_FAULT:
        raise
      return None

  async def _fan_out(self, decision: NotifyDecision) -> DispatchResult | None:
    """Resolve, render, collect tokens and dispatch for an accepted decision."""
    recipients = await self._audience.resolve(decision)
    # Empty audience: nothing to persist or push.
    if not recipients:
      return None

    # Chat titles carry the sender name, so resolve it before rendering.
    sender = await self._chat_sender(decision)
    content = render(decision, sender=sender)
    tokens = await self._tokens.collect(recipients)
    result = await self._dispatcher.dispatch(decision, recipients, content, tokens)
    logger.info(
      "Fan-out complete type=%s entity_id=%s records=%d push_sent=%d push_failed=%d",
      decision.notification_type.value,
      decision.event.entity_id,
      result.records_written,
      result.push_sent,
      result.push_failed,
    )
    return result

  async def _chat_sender(self, decision: NotifyDecision) -> UserProfile | None:
    """Sender profile for chat messages; None for every other type or an unknown sender."""
    if decision.notification_type is not NotificationType.CHAT:
      return None
    sender_id = decision.event.after.get("senderId")
    if not sender_id:
      return None
    return await self._profile_store.get_by_id(str(sender_id))

  # One entry point per record trigger.
  async def on_quotation_created(self, quotation_id: str, data: Mapping[str, Any]) -> DispatchResult | None:
    return await self.handle(ChangeEvent(entity_type=EntityType.QUOTATION, entity_id=quotation_id, after=data))

  async def on_quotation_updated(self, quotation_id: str, before: Mapping[str, Any], after: Mapping[str, Any]) -> DispatchResult | None:
    return await self.handle(ChangeEvent(entity_type=EntityType.QUOTATION, entity_id=quotation_id, before=before, after=after))

  async def on_order_created(self, order_id: str, data: Mapping[str, Any]) -> DispatchResult | None:
    return await self.handle(ChangeEvent(entity_type=EntityType.ORDER, entity_id=order_id, after=data))

  async def on_order_updated(self, order_id: str, before: Mapping[str, Any], after: Mapping[str, Any]) -> DispatchResult | None:
    return await self.handle(ChangeEvent(entity_type=EntityType.ORDER, entity_id=order_id, before=before, after=after))

  async def on_chat_message_created(self, chat_room_id: str, message_id: str, data: Mapping[str, Any]) -> DispatchResult | None:
    return await self.handle(ChangeEvent(entity_type=EntityType.CHAT_MESSAGE, entity_id=message_id, after=data, params={"chatRoomId": chat_room_id}))
