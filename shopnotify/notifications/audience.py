"""Resolve which users receive a notification."""

from __future__ import annotations

import asyncio
import logging

from shopnotify.notifications.contracts import BROADCAST_ROLES, BROADCAST_TYPES, NotificationType, NotifyDecision, ProfileStore, RecipientRef

logger = logging.getLogger(__name__)


def recipient_field_value(decision: NotifyDecision) -> str | None:
  """Return the foreign key naming the single recipient of a targeted notification."""
  after = decision.event.after
  if decision.notification_type is NotificationType.CHAT:
    candidates = (after.get("receiverId"),)
  elif decision.notification_type is NotificationType.ORDER_STATUS_UPDATE:
    candidates = (after.get("customerId"),)
  elif decision.notification_type is NotificationType.QUOTATION_UPDATED:
    candidates = (after.get("customerId"), after.get("userId"))
  else:
    return None

  # First non-empty key wins.
  for candidate in candidates:
    if candidate:
      return str(candidate)
  return None


class AudienceResolver:
  """Compute the recipients for a decision: staff broadcast or one addressed user."""

  def __init__(self, *, profile_store: ProfileStore) -> None:
    self._profile_store = profile_store

  async def resolve(self, decision: NotifyDecision) -> list[RecipientRef]:
    """Return the recipients for `decision`; an empty list means nobody to notify."""
    # Creations fan out to staff; updates and chat go to one addressed user.
    if decision.notification_type in BROADCAST_TYPES:
      return await self._resolve_broadcast()
    return await self._resolve_single(decision)

  async def _resolve_broadcast(self) -> list[RecipientRef]:
    """Union of every admin and staff profile, de-duplicated by user id."""
    # Role queries are independent reads.
    results = await asyncio.gather(*(self._profile_store.query_by_role(role) for role in BROADCAST_ROLES))

    # First role wins when a user shows up in both queries.
    recipients: dict[str, RecipientRef] = {}
    for role, profiles in zip(BROADCAST_ROLES, results, strict=True):
      for profile in profiles:
        # Stores may return stale role values; only trust the role we queried for.
        if profile.role not in (None, role):
          continue
        recipients.setdefault(profile.user_id, RecipientRef(user_id=profile.user_id, role=role, profile=profile))

    logger.debug("Broadcast audience resolved size=%d", len(recipients))
    return list(recipients.values())

  async def _resolve_single(self, decision: NotifyDecision) -> list[RecipientRef]:
    """Look up the one user named on the record; missing keys or profiles are a quiet skip."""
    event = decision.event
    user_id = recipient_field_value(decision)
    if not user_id:
      logger.info("No recipient on %s %s for %s, skipping.", event.entity_type.value, event.entity_id, decision.notification_type.value)
      return []

    # A dangling foreign key is not a fault.
    profile = await self._profile_store.get_by_id(user_id)
    if profile is None:
      logger.info("Recipient %s not found for %s %s, skipping.", user_id, event.entity_type.value, event.entity_id)
      return []

    return [RecipientRef(user_id=profile.user_id, role=profile.role, profile=profile)]
