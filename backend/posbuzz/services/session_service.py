# Overview: Bearer-token sessions for cashiers: issue, check, revoke, prune.

"""
Cashier sessions.

Login hands the client a random 64-hex-character token; the database keeps
only its SHA-256 digest. A session ends 24 hours after login or after 2 hours
without a request, whichever comes first, and logout ends it at once.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..extensions import db
from ..models import SessionToken, User
from posbuzz.time_utils import utcnow


TOKEN_LIFETIME = timedelta(hours=24)
IDLE_LIMIT = timedelta(hours=2)


@dataclass
class SessionContext:
    """Who is calling: returned by validate_session for protected routes."""
    user: User
    session: SessionToken

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()


def _end(session: SessionToken, reason: str, when: datetime) -> None:
    session.is_revoked = True
    session.revoked_at = when
    session.revoked_reason = reason


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Open a session for an active user.

    Returns (session_row, plaintext_token); the plaintext is never stored.
    The client's User-Agent and address are kept for `flask users sessions`.
    Raises ValueError for an unknown or deactivated user.
    """
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise ValueError("User not found or not active")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + TOKEN_LIFETIME,
        is_revoked=False,
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its caller, or None.

    An idle session or one whose user was deactivated is revoked on the
    spot; a past-expiry session is simply refused. A good token has its
    last_used_at bumped.
    """
    if not token:
        return None

    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    if now - session.last_used_at > IDLE_LIMIT:
        _end(session, "Idle timeout", now)
        db.session.commit()
        return None

    user = session.user
    if user is None or not user.is_active:
        _end(session, "User account deactivated", now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """End one session. False if the token is unknown or already revoked."""
    session = _live_session(token)
    if session is None:
        return False
    _end(session, reason, utcnow())
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """End every open session of a user; returns how many were ended."""
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
    for session in sessions:
        _end(session, reason, now)
    db.session.commit()
    return len(sessions)


def list_user_sessions(user_id: int, include_revoked: bool = False) -> list[SessionToken]:
    """A user's sessions, newest first."""
    q = db.session.query(SessionToken).filter(SessionToken.user_id == user_id)
    if not include_revoked:
        q = q.filter(SessionToken.is_revoked.is_(False))
    return q.order_by(SessionToken.created_at.desc(), SessionToken.id.desc()).all()


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """Delete expired or revoked sessions created before the retention window."""
    now = utcnow()
    deleted = db.session.query(SessionToken).filter(
        db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
        SessionToken.created_at < now - timedelta(days=retention_days),
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
