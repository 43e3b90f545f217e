"""Decide whether a record change is worth a notification."""

from __future__ import annotations

from typing import Any

from shopnotify.notifications.contracts import ChangeEvent, EntityType, NotificationType, NotifyDecision

_CREATION_TYPES: dict[EntityType, NotificationType] = {
  EntityType.QUOTATION: NotificationType.NEW_QUOTATION,
  EntityType.CHAT_MESSAGE: NotificationType.CHAT,
  EntityType.ORDER: NotificationType.NEW_ORDER,
}


def _is_set(value: Any) -> bool:
  """Present and non-empty; zero counts as set."""
  return value is not None and value != ""


def _price_is_set(value: Any) -> bool:
  """A price of zero (or NaN) means no quote has been given yet."""
  if not _is_set(value) or isinstance(value, bool):
    return False
  if isinstance(value, int | float):
    return value != 0 and value == value
  return True


def classify(event: ChangeEvent) -> NotifyDecision | None:
  """Return a decision for notification-worthy changes, or None to skip.

  Creations always notify. Updates notify only for an order status transition or
  for a quotation whose admin price changed to a set value.
  """
  # Creations are always worth a notification.
  if event.is_creation:
    notification_type = _CREATION_TYPES.get(event.entity_type)
    if notification_type is None:
      return None
    return NotifyDecision(notification_type=notification_type, event=event)

  # Updates compare the watched field between snapshots.
  before = event.before or {}
  after = event.after

  if event.entity_type is EntityType.ORDER:
    new_status = after.get("status")
    # Raw comparison: "paid" -> "PAID" counts as a transition. A cleared status has nothing to announce.
    if before.get("status") != new_status and _is_set(new_status):
      return NotifyDecision(notification_type=NotificationType.ORDER_STATUS_UPDATE, event=event)
    return None

  if event.entity_type is EntityType.QUOTATION:
    new_price = after.get("adminTotalPrice")
    # Only announce a price the customer can act on.
    if before.get("adminTotalPrice") != new_price and _price_is_set(new_price):
      return NotifyDecision(notification_type=NotificationType.QUOTATION_UPDATED, event=event)
    return None

  return None
