"""Types and collaborator contracts for the notification fan-out engine."""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol


class EntityType(str, Enum):
  """Logical type of the record whose change triggered an event."""

  QUOTATION = "quotation"
  CHAT_MESSAGE = "chat_message"
  ORDER = "order"


class Role(str, Enum):
  """Single-valued role stored on user profiles and in auth claims."""

  ADMIN = "admin"
  STAFF = "staff"
  CUSTOMER = "customer"


ALLOWED_ROLES: tuple[str, ...] = tuple(role.value for role in Role)
BROADCAST_ROLES: tuple[str, ...] = (Role.ADMIN.value, Role.STAFF.value)


class NotificationType(str, Enum):
  """Kinds of notification records; also sent as `data.type` in push payloads."""

  NEW_QUOTATION = "new_quotation"
  NEW_ORDER = "new_order"
  ORDER_STATUS_UPDATE = "order_status_update"
  QUOTATION_UPDATED = "quotation_updated"
  CHAT = "chat"


# Types that go to every admin and staff user rather than one addressed user.
BROADCAST_TYPES = frozenset({NotificationType.NEW_QUOTATION, NotificationType.NEW_ORDER})


def _freeze(data: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
  """Shallow read-only copy of a snapshot."""
  if data is None:
    return None
  return MappingProxyType(dict(data))


@dataclass(frozen=True)
class ChangeEvent:
  """Before/after snapshots of one changed record; `before` is None for creations."""

  entity_type: EntityType
  entity_id: str
  after: Mapping[str, Any]
  before: Mapping[str, Any] | None = None
  params: Mapping[str, str] = field(default_factory=dict)

  def __post_init__(self) -> None:
    # Snapshots are read-only views so no stage of the pipeline can mutate them.
    object.__setattr__(self, "after", _freeze(self.after) or MappingProxyType({}))
    object.__setattr__(self, "before", _freeze(self.before))
    object.__setattr__(self, "params", MappingProxyType({str(k): str(v) for k, v in self.params.items()}))

  @property
  def is_creation(self) -> bool:
    return self.before is None


@dataclass(frozen=True)
class UserProfile:
  """Read model of a user document."""

  user_id: str
  role: str | None = None
  push_token: str | None = None
  display_name: str | None = None


@dataclass(frozen=True)
class RecipientRef:
  """One member of an audience, optionally carrying the profile it was resolved from."""

  user_id: str
  role: str | None = None
  profile: UserProfile | None = field(default=None, compare=False)


@dataclass(frozen=True)
class NotifyDecision:
  """Classifier verdict that an event warrants a notification of `notification_type`."""

  notification_type: NotificationType
  event: ChangeEvent

  @property
  def discriminator(self) -> str:
    """Value that distinguishes two notification-worthy updates of the same record."""
    after = self.event.after
    # Creations happen once per record and need no discriminator.
    if self.notification_type is NotificationType.ORDER_STATUS_UPDATE:
      return str(after.get("status"))
    if self.notification_type is NotificationType.QUOTATION_UPDATED:
      return str(after.get("adminTotalPrice"))
    return ""


@dataclass(frozen=True)
class NotificationContent:
  """Rendered title, body and string-only data payload."""

  title: str
  body: str
  data: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class NotificationRecord:
  """In-app notification persisted once per (event, recipient)."""

  id: str
  user_id: str
  type: NotificationType
  title: str
  message: str
  related_entity_id: str
  read: bool = False
  created_at: datetime | None = None

  def to_document(self) -> dict[str, Any]:
    """Serialize to the camelCase shape clients read from the notifications collection."""
    return {
      "userId": self.user_id,
      "type": self.type.value,
      "title": self.title,
      "message": self.message,
      "relatedEntityId": self.related_entity_id,
      "read": self.read,
      "createdAt": self.created_at,
    }


def notification_record_id(decision: NotifyDecision, user_id: str) -> str:
  """Deterministic record id so a redelivered event overwrites instead of duplicating."""
  # Ids are the first 32 hex characters (128 bits) of the digest.
  key = f"{decision.notification_type.value}:{decision.event.entity_id}:{user_id}:{decision.discriminator}"
  return hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]


@dataclass(frozen=True)
class PushPayload:
  """One batched push request covering every collected token."""

  tokens: tuple[str, ...]
  title: str
  body: str
  data: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PushOutcome:
  """Aggregate per-token result reported by the push transport."""

  success_count: int
  failure_count: int
  failed_tokens: tuple[str, ...] = ()


@dataclass(frozen=True)
class DispatchResult:
  records_written: int
  push_sent: int
  push_failed: int


class NotificationError(Exception):
  """Base class for notification delivery failures."""


class NotificationProviderError(NotificationError):
  """Raised when the push provider rejects a whole request."""


class ProfileStore(Protocol):
  """Read access to user profiles plus the merge-write used by role assignment."""

  async def get_by_id(self, user_id: str) -> UserProfile | None:
    """Return the profile for `user_id`, or None when no document exists."""

  async def query_by_role(self, role: str) -> list[UserProfile]:
    """Return every profile whose role equals `role`."""

  async def merge_update(self, user_id: str, fields: Mapping[str, Any]) -> None:
    """Merge `fields` into the profile, preserving other fields."""


class ClaimsStore(Protocol):
  """Authentication-claims store."""

  async def set_role_claim(self, user_id: str, role: str) -> None:
    """Replace the user's custom claims with `{"role": role}`."""


class RecordStore(Protocol):
  """Persistence for in-app notification records."""

  async def batch_insert(self, records: Sequence[NotificationRecord]) -> None:
    """Write all records atomically."""


class PushSender(Protocol):
  """Push transport contract."""

  def send(self, payload: PushPayload) -> PushOutcome:
    """Send one batched push synchronously and report per-token outcomes."""
