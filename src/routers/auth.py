"""Admin authentication for the assistant endpoints."""

from __future__ import annotations

import hmac
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth_token"


def _error(message: str, status_code: int = 401) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


class AdminAuthenticator:
    """Checks a shared admin token from the ``auth_token`` cookie or a bearer header.

    With no token configured every request is allowed.
    """

    def __init__(self, token: str | None = None) -> None:
        self.token = token or None

    @staticmethod
    def _presented_token(request: Request) -> str | None:
        cookie = request.cookies.get(AUTH_COOKIE)
        if cookie:
            return cookie
        header = request.headers.get("authorization") or ""
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
        return None

    def authenticate(self, request: Request) -> JSONResponse | None:
        """Return None when the caller is allowed, else the error response to send."""
        if self.token is None:
            return None
        presented = self._presented_token(request)
        if presented is None:
            return _error("Not authenticated. Please login.")
        if not hmac.compare_digest(presented.encode(), self.token.encode()):
            client = request.client.host if request.client else "?"
            logger.warning("Rejected admin request with an invalid token from %s", client)
            return _error("Invalid or expired session. Please login again.")
        return None
