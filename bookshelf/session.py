# bookshelf/session.py
"""
Server-side sessions and the guard protecting catalogue routes.

A successful login creates a random token mapped to the user's public
details. The token travels back either in the ``Authorization: Bearer``
header or in the session cookie; ``require_user`` resolves it for every
protected request and answers 401 when it is missing or unknown.
"""

import logging
import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from fastapi import Depends, HTTPException, Request
from pydantic import BaseModel

from .config import SESSION_COOKIE, SESSION_TTL
from .models import PublicUser


logger = logging.getLogger(__name__)


class Session(BaseModel):
    token: str
    user: PublicUser
    created_at: datetime


class SessionManager:
    """In-process token table. Sessions do not survive a restart.

    A session expires ``ttl`` seconds after login. Expired tokens are
    dropped when they are next presented and swept on every login, so
    the table does not grow without bound.
    """

    def __init__(self, ttl: int = SESSION_TTL, clock: Optional[Callable[[], datetime]] = None):
        self.ttl = timedelta(seconds=ttl)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def _expired(self, session: Session, now: datetime) -> bool:
        return now - session.created_at >= self.ttl

    def create(self, user: PublicUser) -> Session:
        now = self._clock()
        session = Session(token=secrets.token_urlsafe(32), user=user, created_at=now)
        with self._lock:
            self._prune(now)
            self._sessions[session.token] = session
        return session

    def _prune(self, now: datetime) -> None:
        stale = [t for t, s in self._sessions.items() if self._expired(s, now)]
        for token in stale:
            del self._sessions[token]
        if stale:
            logger.debug("Pruned %d expired sessions", len(stale))

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is not None and self._expired(session, self._clock()):
                del self._sessions[token]
                return None
            return session

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)


def token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(SESSION_COOKIE)


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def current_session(
    request: Request,
    sessions: SessionManager = Depends(get_sessions),
) -> Session:
    session = sessions.get(token_from_request(request))
    if session is None:
        raise HTTPException(
            status_code=401,
            detail="Login required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


def require_user(session: Session = Depends(current_session)) -> PublicUser:
    """Dependency gating protected routes on a logged-in user."""
    return session.user
