from __future__ import annotations

import uuid

from brand_studio import messages
from brand_studio.errors import SessionNotFoundError
from brand_studio.session import StudioSession


class SessionStore:
    """
    In-memory session registry. Nothing is written to disk; a process restart
    (or a page reload without the session id) starts from scratch.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, StudioSession] = {}

    def create(self) -> StudioSession:
        session_id = uuid.uuid4().hex[:12]
        session = StudioSession(session_id=session_id)
        self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> StudioSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(messages.SESSION_NOT_FOUND)
        return session

    def get_or_create(self, session_id: str | None) -> StudioSession:
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]
        return self.create()

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def list_ids(self) -> list[str]:
        return sorted(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
