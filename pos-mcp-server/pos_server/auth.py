"""Session management with injectable storage."""

import json
import os
from pathlib import Path
from typing import Optional
import logging

from .models import SessionData, User

logger = logging.getLogger(__name__)


class SessionStore:
    """Where session data lives between runs."""

    def load(self) -> SessionData:
        raise NotImplementedError

    def save(self, session: SessionData) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    """Keeps the session in process memory only."""

    def __init__(self, session: Optional[SessionData] = None) -> None:
        self._session = session or SessionData()

    def load(self) -> SessionData:
        return self._session.model_copy()

    def save(self, session: SessionData) -> None:
        self._session = session.model_copy()

    def clear(self) -> None:
        self._session = SessionData()


class FileSessionStore(SessionStore):
    """Persists the session as JSON with owner-only permissions."""

    def __init__(self, session_file: Optional[str] = None) -> None:
        """
        Args:
            session_file: Path to store session data. Defaults to ~/.pos_session.json
        """
        if session_file is None:
            session_file = str(Path.home() / ".pos_session.json")
        self.session_file = session_file

    def load(self) -> SessionData:
        if os.path.exists(self.session_file):
            try:
                with open(self.session_file, "r") as f:
                    return SessionData(**json.load(f))
            except (json.JSONDecodeError, ValueError) as e:
                # Corrupted file, start fresh
                logger.warning(f"Could not load session from {self.session_file}: {e}")
        return SessionData()

    def save(self, session: SessionData) -> None:
        with open(self.session_file, "w") as f:
            json.dump(session.model_dump(), f, default=str)
        os.chmod(self.session_file, 0o600)
        logger.info(f"Session saved to {self.session_file}")

    def clear(self) -> None:
        if os.path.exists(self.session_file):
            os.remove(self.session_file)
            logger.info("Session cleared")


class AuthManager:
    """Explicit session context handed to the backend client."""

    def __init__(self, store: Optional[SessionStore] = None) -> None:
        """
        Initialize the authentication manager.

        Args:
            store: Session storage. Defaults to an in-memory store.
        """
        self.store = store if store is not None else MemorySessionStore()
        self.session: SessionData = self.store.load()

    def save_session(self, access_token: Optional[str], user: Optional[User] = None) -> None:
        """
        Save an authenticated session.

        Args:
            access_token: Bearer token from a successful login
            user: The signed-in user
        """
        self.session = SessionData(
            access_token=access_token,
            user=user,
            is_authenticated=bool(access_token),
        )
        self.store.save(self.session)

    def clear_session(self) -> None:
        """Forget the current session."""
        self.session = SessionData()
        self.store.clear()

    def is_authenticated(self) -> bool:
        return self.session.is_authenticated and bool(self.session.access_token)

    def get_access_token(self) -> Optional[str]:
        return self.session.access_token

    def get_headers(self) -> dict[str, str]:
        """Request headers for the current session."""
        headers = {"Accept": "application/json"}
        token = self.get_access_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers
