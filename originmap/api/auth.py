"""Bearer-token dependencies for the protected routes.

Two checks are provided:

- :func:`require_access_token` -- any non-empty bearer token.  Used by the
  streaming-library routes, where the token *is* the listener's access
  token and is forwarded upstream.
- :func:`require_admin` -- guards cache invalidation.  When
  ``ADMIN_API_TOKEN`` is configured the bearer token must match it
  (constant-time comparison); otherwise any signed-in listener may clear.

Missing credentials are 401; a token that does not match is 403.
"""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

auth_scheme = HTTPBearer(auto_error=False)

CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(auth_scheme)]


def require_access_token(creds: CredentialsDep) -> str:
    """Return the bearer token or raise 401."""
    if creds is None or not creds.credentials.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return creds.credentials.strip()


def require_admin(request: Request, creds: CredentialsDep) -> str:
    """Return the bearer token if it may perform admin actions."""
    token = require_access_token(creds)

    admin_token: str = getattr(request.app.state.settings, "admin_api_token", "") or ""
    if admin_token and not hmac.compare_digest(token.encode("utf-8"), admin_token.encode("utf-8")):
        raise HTTPException(status_code=403, detail="Invalid admin token")
    return token


AccessTokenDep = Annotated[str, Depends(require_access_token)]
AdminTokenDep = Annotated[str, Depends(require_admin)]
