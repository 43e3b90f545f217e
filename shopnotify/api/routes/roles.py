"""Callable endpoint for admin role assignment."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from shopnotify.api.deps import get_collaborators
from shopnotify.core.security import get_optional_caller
from shopnotify.notifications.factory import Collaborators
from shopnotify.services.roles import Caller, assign_role

router = APIRouter()


class CallableRequest(BaseModel):
  """Callable-protocol envelope: arguments travel under `data`."""

  data: dict[str, Any] = Field(default_factory=dict)


@router.post("/setUserRole")
async def set_user_role(
  payload: CallableRequest,
  caller: Annotated[Caller | None, Depends(get_optional_caller)],
  collaborators: Annotated[Collaborators, Depends(get_collaborators)],
) -> dict[str, Any]:
  """Assign a role to a user; errors are rendered by the role assignment exception handler."""
  result = await assign_role(
    caller,
    # Raw values: assign_role owns the argument checks and their messages.
    payload.data.get("uid"),
    payload.data.get("role"),
    claims_store=collaborators.claims_store,
    profile_store=collaborators.profile_store,
  )
  return {"result": result.to_dict()}
