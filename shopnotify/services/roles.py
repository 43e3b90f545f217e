"""Admin-only role assignment kept in sync across auth claims and the profile document."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from shopnotify.notifications.contracts import ALLOWED_ROLES, ClaimsStore, ProfileStore, Role

logger = logging.getLogger(__name__)


class RoleAssignmentError(Exception):
  """Typed failure returned to the caller of `assign_role`."""

  code = "internal"
  status = "INTERNAL"

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class Unauthenticated(RoleAssignmentError):
  code = "unauthenticated"
  status = "UNAUTHENTICATED"


class PermissionDenied(RoleAssignmentError):
  code = "permission-denied"
  status = "PERMISSION_DENIED"


class InvalidArgument(RoleAssignmentError):
  code = "invalid-argument"
  status = "INVALID_ARGUMENT"


class Internal(RoleAssignmentError):
  code = "internal"
  status = "INTERNAL"


@dataclass(frozen=True)
class Caller:
  """Authenticated identity of whoever invoked the operation."""

  uid: str
  claims: Mapping[str, Any] = field(default_factory=dict)

  @property
  def role(self) -> str | None:
    role = self.claims.get("role")
    return str(role) if role is not None else None


@dataclass(frozen=True)
class RoleAssignmentResult:
  success: bool
  message: str

  def to_dict(self) -> dict[str, Any]:
    return {"success": self.success, "message": self.message}


async def assign_role(caller: Caller | None, target_user_id: Any, new_role: Any, *, claims_store: ClaimsStore, profile_store: ProfileStore) -> RoleAssignmentResult:
  """Assign `new_role` to `target_user_id` on behalf of an admin caller.

  Both arguments arrive exactly as the client sent them; role names must match
  an allowed role exactly, with no trimming or case folding.

  The caller's own token is not refreshed here; clients must force a token refresh
  to observe new claims.
  """
  if caller is None or not caller.uid:
    raise Unauthenticated("You must be authenticated to call this function.")

  # Authorize from the token claim, not the profile document.
  if caller.role != Role.ADMIN.value:
    raise PermissionDenied("Only admins can assign roles.")

  if not target_user_id or not new_role:
    raise InvalidArgument("You must provide both uid and role")

  if new_role not in ALLOWED_ROLES:
    raise InvalidArgument(f"Invalid role. Allowed roles are: {', '.join(ALLOWED_ROLES)}")

  try:
    await claims_store.set_role_claim(target_user_id, new_role)
    await profile_store.merge_update(target_user_id, {"role": new_role, "updatedAt": datetime.datetime.now(datetime.UTC)})
  except Exception as exc:
    logger.error("Error setting user role uid=%s role=%s by caller=%s", target_user_id, new_role, caller.uid, exc_info=True)
    raise Internal("Failed to assign role. Check server logs.") from exc

  logger.info("Role %s assigned to user %s by %s", new_role, target_user_id, caller.uid)
  return RoleAssignmentResult(success=True, message=f"Role '{new_role}' assigned to user {target_user_id}")
