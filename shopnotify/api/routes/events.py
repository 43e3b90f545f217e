"""Change-event intake used by the document store's trigger mechanism."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from shopnotify.api.deps import get_fanout_service
from shopnotify.core.security import require_event_secret
from shopnotify.notifications.contracts import ChangeEvent, EntityType
from shopnotify.notifications.service import NotificationFanoutService

router = APIRouter()
logger = logging.getLogger(__name__)

# Accept the collection-style names emitted by trigger bridges as well as the enum values.
_ENTITY_ALIASES: dict[str, EntityType] = {
  "quotation": EntityType.QUOTATION,
  "quotations": EntityType.QUOTATION,
  "chat_message": EntityType.CHAT_MESSAGE,
  "chatmessage": EntityType.CHAT_MESSAGE,
  "messages": EntityType.CHAT_MESSAGE,
  "order": EntityType.ORDER,
  "orders": EntityType.ORDER,
}


class ChangeEventRequest(BaseModel):
  """A created or updated record, as delivered by the trigger bridge."""

  entity_type: EntityType = Field(alias="entityType")
  entity_id: str = Field(alias="entityId", min_length=1, max_length=1500)
  before: dict[str, Any] | None = None
  after: dict[str, Any]
  params: dict[str, str] = Field(default_factory=dict)
  model_config = ConfigDict(extra="forbid", populate_by_name=True)

  @field_validator("entity_type", mode="before")
  @classmethod
  def normalize_entity_type(cls, value: Any) -> EntityType:
    normalized = str(value or "").strip().lower()
    entity_type = _ENTITY_ALIASES.get(normalized)
    if entity_type is None:
      raise PydanticCustomError("entity_type_unknown", "entityType must be one of Quotation, ChatMessage, Order.")
    return entity_type

  def to_event(self) -> ChangeEvent:
    return ChangeEvent(entity_type=self.entity_type, entity_id=self.entity_id, before=self.before, after=self.after, params=self.params)


@router.post("/events", status_code=status.HTTP_200_OK, dependencies=[Depends(require_event_secret)])
async def receive_change_event(payload: ChangeEventRequest, service: Annotated[NotificationFanoutService, Depends(get_fanout_service)]) -> dict[str, str]:
  """Run the fan-out for one change.

  Returns 200 for handled and skipped events alike. A fault in a flow that must be
  redelivered surfaces as a 500 so the sender retries the delivery.
  """
  event = payload.to_event()
  logger.info("Received %s event for %s %s", "create" if event.is_creation else "update", event.entity_type.value, event.entity_id)
  await service.handle(event)
  return {"status": "processed"}
