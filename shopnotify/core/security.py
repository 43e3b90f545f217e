from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from shopnotify.config import Settings, get_settings
from shopnotify.core.firebase import verify_id_token
from shopnotify.services.roles import Caller

logger = logging.getLogger(__name__)

# Missing credentials are reported by the callable itself as UNAUTHENTICATED, not a bare 403.
security_scheme = HTTPBearer(auto_error=False)


async def get_optional_caller(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> Caller | None:
  """Resolve the caller from a Firebase ID token; None when absent or invalid."""
  # No bearer header: let the callable answer UNAUTHENTICATED.
  if token is None or not token.credentials:
    return None

  # Verification may fetch signing certificates over the network.
  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    return None

  uid = decoded_claims.get("uid")
  if not uid:
    return None

  # Custom claims are flattened into the decoded token next to the standard ones.
  return Caller(uid=str(uid), claims=dict(decoded_claims))


async def require_event_secret(
  settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_shopnotify_event_secret: str | None = Header(default=None)
) -> None:
  """Reject event deliveries that do not carry the shared event secret."""
  # Fail closed when no secret is configured.
  if not settings.event_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Event authentication is not configured.")

  # The dedicated header leaves Authorization free for platform OIDC tokens.
  header_valid = secrets.compare_digest(x_shopnotify_event_secret or "", settings.event_secret)
  bearer_valid = secrets.compare_digest(authorization or "", f"Bearer {settings.event_secret}")
  if not header_valid and not bearer_valid:
    logger.warning("Rejected event delivery with an invalid secret.")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid event secret.")
