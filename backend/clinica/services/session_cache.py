"""
Process-local session cache.

Tracks issued tokens for fast lookups and telemetry. It is never the source
of truth: every lookup re-validates the token with the token authority first,
and a valid token missing from the cache (e.g. after a restart) is simply
tracked again from its claims.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from clinica.schemas.auth import SessionStatistics, TokenClaims
from clinica.services.token_authority import TokenAuthority, utcnow

logger = logging.getLogger(__name__)

DEFAULT_IDLE_THRESHOLD = timedelta(hours=24)


@dataclass
class Session:
    token: str
    user_id: int
    username: str
    role: Optional[str]
    permissions: list = field(default_factory=list)
    created_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    active: bool = True


class SessionCache:
    def __init__(
        self,
        authority: TokenAuthority,
        clock: Callable[[], datetime] = utcnow,
        idle_threshold: timedelta = DEFAULT_IDLE_THRESHOLD,
    ):
        self._authority = authority
        self._clock = clock
        self.idle_threshold = idle_threshold
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def track(self, token: str, claims: TokenClaims) -> Session:
        """Insert or refresh the entry for ``token``, stamping last activity."""
        now = self._clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                session = Session(
                    token=token,
                    user_id=claims.user_id,
                    username=claims.username,
                    role=claims.role,
                    permissions=list(claims.permissions),
                    created_at=claims.issued_at or now,
                )
                self._sessions[token] = session
            session.active = True
            session.last_activity = now
            return session

    def get(self, token: str) -> Session:
        """
        Return the session for a valid token. Raises InvalidTokenError if the
        token does not validate; a valid token absent from the cache is
        reconstructed from its claims.
        """
        claims = self._authority.validate(token)
        with self._lock:
            session = self._sessions.get(token)
            if session is not None and session.active:
                session.last_activity = self._clock()
                return session
        logger.debug("Reconstructing session for user %s from token claims", claims.user_id)
        return self.track(token, claims)

    def revoke(self, token: str) -> bool:
        """Drop the entry. The token itself stays valid until it expires."""
        with self._lock:
            session = self._sessions.pop(token, None)
        if session is None:
            return False
        session.active = False
        return True

    def purge_expired(self, idle_threshold: Optional[timedelta] = None) -> int:
        threshold = idle_threshold if idle_threshold is not None else self.idle_threshold
        now = self._clock()
        with self._lock:
            stale = [
                token for token, session in self._sessions.items()
                if now - session.last_activity > threshold
            ]
            for token in stale:
                del self._sessions[token]
        if stale:
            logger.info("Purged %d idle sessions", len(stale))
        return len(stale)

    def statistics(self) -> SessionStatistics:
        now = self._clock()
        with self._lock:
            active = [s for s in self._sessions.values() if s.active]
        by_role: dict[str, int] = {}
        for session in active:
            key = session.role or "unknown"
            by_role[key] = by_role.get(key, 0) + 1
        return SessionStatistics(
            total=len(active),
            by_role=by_role,
            last_hour=sum(1 for s in active if now - s.created_at < timedelta(hours=1)),
        )
