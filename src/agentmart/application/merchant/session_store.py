"""Session storage for the merchant service."""

from __future__ import annotations

from uuid import UUID

from ...domain.errors import SessionNotFoundError
from ...domain.merchant import MerchantSession


class SessionStore:
    """In-process registry of open merchant sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, MerchantSession] = {}

    def create(self) -> MerchantSession:
        session = MerchantSession()
        self._sessions[str(session.id)] = session
        return session

    def get(self, session_id: str | UUID) -> MerchantSession:
        session = self._sessions.get(str(session_id))
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def close(self, session_id: str | UUID) -> None:
        if self._sessions.pop(str(session_id), None) is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
