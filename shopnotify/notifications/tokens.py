"""Map recipients to push tokens."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from shopnotify.notifications.contracts import ProfileStore, RecipientRef, UserProfile

logger = logging.getLogger(__name__)


class TokenCollector:
  """Collect the current push token of each recipient; recipients without one are left out."""

  def __init__(self, *, profile_store: ProfileStore) -> None:
    self._profile_store = profile_store

  async def collect(self, recipients: Sequence[RecipientRef]) -> list[tuple[str, str]]:
    """Return `(user_id, token)` pairs in recipient order, without duplicate tokens."""
    # Lookups only happen for recipients resolved without a profile snapshot.
    profiles = await asyncio.gather(*(self._profile_for(recipient) for recipient in recipients))

    collected: list[tuple[str, str]] = []
    seen_tokens: set[str] = set()
    for recipient, profile in zip(recipients, profiles, strict=True):
      token = profile.push_token if profile is not None else None
      if not token:
        logger.debug("No push token for user %s; in-app record only.", recipient.user_id)
        continue
      # Shared devices can register the same token for two accounts.
      if token in seen_tokens:
        continue
      seen_tokens.add(token)
      collected.append((recipient.user_id, token))

    return collected

  async def _profile_for(self, recipient: RecipientRef) -> UserProfile | None:
    """Prefer the snapshot attached by the resolver over a fresh read."""
    if recipient.profile is not None:
      return recipient.profile
    return await self._profile_store.get_by_id(recipient.user_id)
