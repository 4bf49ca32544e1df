"""In-memory login sessions for the HTTP API."""

from __future__ import annotations

import logging
import secrets

from ..identity.auth import AuthResult

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Token"


class SessionRegistry:
    """Maps opaque session tokens to authenticated accounts.

    Sessions live as long as the process. Role checks are not cached here:
    policies re-read roles from the store on every call.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, AuthResult] = {}

    def open(self, result: AuthResult) -> str:
        token = secrets.token_urlsafe(32)
        self._sessions[token] = result
        logger.debug("Session opened", extra={"account_id": result.account_id})
        return token

    def get(self, token: str | None) -> AuthResult | None:
        if not token:
            return None
        return self._sessions.get(token)

    def close(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None

    def close_account(self, account_id: str) -> int:
        """Drop every session of an account (after block or delete)."""
        tokens = [t for t, r in self._sessions.items() if r.account_id == account_id]
        for token in tokens:
            del self._sessions[token]
        return len(tokens)
