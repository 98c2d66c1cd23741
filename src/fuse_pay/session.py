"""
Session manager: sole owner of the session key and auth token.

Phase machine: UNAUTHENTICATED -> KEY_NEGOTIATED -> AUTHENTICATED.
No transition skips a phase; the only way back is reset().
"""

import logging
import secrets
import threading
from enum import IntEnum
from typing import Any, Optional

from pydantic import BaseModel

from fuse_pay.crypto import DEFAULT_PRIMITIVES, Primitives
from fuse_pay.errors import NotAuthenticated, ProtocolError

_LOGGER = logging.getLogger(__name__)


class Phase(IntEnum):
    """Protocol phase of a session."""

    UNAUTHENTICATED = 0
    KEY_NEGOTIATED = 1
    AUTHENTICATED = 2


class Session(BaseModel):
    """State for one login session. Held in memory only."""

    phase: Phase = Phase.UNAUTHENTICATED
    symmetric_key: Optional[bytes] = None
    auth_token: Optional[str] = None
    account_email: Optional[str] = None

    def __repr__(self) -> str:
        return f"Session(phase={self.phase.name}, account_email={self.account_email!r})"

    __str__ = __repr__


class SessionManager:
    """Enforces phase transitions for a single Session.

    Mutations hold a lock so flows triggered from different tasks or threads
    cannot interleave writes to the key or token.
    """

    def __init__(self, primitives: Primitives = DEFAULT_PRIMITIVES) -> None:
        self._primitives = primitives
        self._session = Session()
        self._lock = threading.Lock()

    @property
    def phase(self) -> Phase:
        return self._session.phase

    @property
    def account_email(self) -> Optional[str]:
        return self._session.account_email

    @property
    def has_key(self) -> bool:
        return self._session.symmetric_key is not None

    def snapshot(self) -> dict[str, Any]:
        """Loggable view of the session. Never includes key or token."""
        return {
            "phase": self._session.phase.name,
            "account_email": self._session.account_email,
            "has_key": self._session.symmetric_key is not None,
            "has_token": self._session.auth_token is not None,
        }

    def begin_key_negotiation(self, email: str) -> None:
        """Generate a fresh session key for a new login attempt.

        A second call without an intervening reset() raises ProtocolError,
        so a key the backend may already hold is never silently discarded.
        """
        with self._lock:
            if self._session.phase != Phase.UNAUTHENTICATED:
                raise ProtocolError(
                    f"Cannot begin key negotiation in phase {self._session.phase.name}; reset() first",
                    details={"phase": self._session.phase.name},
                )
            self._session = Session(
                phase=Phase.KEY_NEGOTIATED,
                symmetric_key=self._primitives.generate_symmetric_key(),
                account_email=email,
            )
        _LOGGER.debug("Session key generated for %s", email)

    def complete_authentication(self, token: str, expected_key: Optional[bytes] = None) -> None:
        """Install the auth token and move to AUTHENTICATED.

        `expected_key` is the session key the login request was sealed with.
        If the session was reset or renegotiated while that request was in
        flight, the key no longer matches and ProtocolError is raised.
        """
        with self._lock:
            if self._session.phase != Phase.KEY_NEGOTIATED or self._session.symmetric_key is None:
                raise ProtocolError(
                    f"Cannot complete authentication in phase {self._session.phase.name}",
                    details={"phase": self._session.phase.name},
                )
            if expected_key is not None and not secrets.compare_digest(self._session.symmetric_key, expected_key):
                raise ProtocolError(
                    "Login response belongs to a session that has since been reset",
                    details={"phase": self._session.phase.name},
                )
            self._session.auth_token = token
            self._session.phase = Phase.AUTHENTICATED
        _LOGGER.debug("Session authenticated for %s", self._session.account_email)

    def reset(self) -> None:
        """Drop key, token and account. Safe to call in any phase."""
        with self._lock:
            if self._session.phase != Phase.UNAUTHENTICATED:
                _LOGGER.debug("Resetting session from phase %s", self._session.phase.name)
            self._session = Session()

    def require_key_negotiated(self) -> tuple[str, bytes]:
        """Return (email, key) for the handshake calls."""
        session = self._session
        if session.phase != Phase.KEY_NEGOTIATED or session.symmetric_key is None or session.account_email is None:
            raise ProtocolError(
                f"Operation requires phase KEY_NEGOTIATED, current phase is {session.phase.name}",
                details={"phase": session.phase.name},
            )
        return session.account_email, session.symmetric_key

    def require_authenticated(self) -> tuple[bytes, str]:
        """Return (key, token) or raise NotAuthenticated."""
        session = self._session
        if session.phase != Phase.AUTHENTICATED or session.symmetric_key is None or session.auth_token is None:
            raise NotAuthenticated(f"Operation requires an authenticated session, current phase is {session.phase.name}")
        return session.symmetric_key, session.auth_token
