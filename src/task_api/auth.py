from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .errors import Unauthorized
from .settings import Settings, get_settings

_security = HTTPBasic(auto_error=False)


# PUBLIC_INTERFACE
def get_owner_dependency(settings: Optional[Settings] = None):
    """
    Return a FastAPI dependency callable that yields the authenticated owner id.

    The service never authenticates users itself. Two modes:
    - Default: an upstream auth collaborator (gateway, middleware) has already
      authenticated the caller and forwards the opaque user id in the
      OWNER_HEADER header (X-User-Id by default). Missing or blank -> 401.
    - ENABLE_BASIC_AUTH=true: HTTP Basic credentials are checked against
      BASIC_AUTH_USERNAME/BASIC_AUTH_PASSWORD and the username is the owner id.

    Usage:
        from .auth import get_owner_dependency
        owner_dep = get_owner_dependency()
        def handler(owner_id: str = Depends(owner_dep)): ...
    """
    settings = settings or get_settings()

    if not settings.enable_basic_auth:
        header_name = settings.owner_header

        async def _from_header(request: Request) -> str:
            """Read the owner id forwarded by the auth collaborator."""
            owner_id = (request.headers.get(header_name) or "").strip()
            if not owner_id:
                raise Unauthorized()
            return owner_id

        return _from_header

    expected_user: Optional[str] = settings.basic_auth_username
    expected_pass: Optional[str] = settings.basic_auth_password

    async def _from_basic(creds: Optional[HTTPBasicCredentials] = Depends(_security)) -> str:
        """
        Enforce HTTP Basic authentication and return the username as owner id.

        Raises:
            Unauthorized (401, WWW-Authenticate: Basic) if credentials are missing or invalid.
        """
        if creds is None or not creds.username or creds.password is None:
            raise Unauthorized("Not authenticated", www_authenticate="Basic")

        if expected_user is None or expected_pass is None:
            # Misconfiguration: auth enabled but username/password not provided
            raise Unauthorized("Server authentication not configured", www_authenticate="Basic")

        if not (creds.username == expected_user and creds.password == expected_pass):
            raise Unauthorized("Invalid authentication credentials", www_authenticate="Basic")
        return creds.username

    return _from_basic
