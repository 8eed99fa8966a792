# config/dependencies.py

import logging
from typing import Optional, Iterable, Callable
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from sqlalchemy import select

from config.db import get_db
from config.settings import SESSION_COOKIE_NAME
from model.user import Users, SessionToken
from model.enums import UserRole

logger = logging.getLogger(__name__)


def _get_session_token(request: Request) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    auth = request.headers.get("authorization") or request.headers.get("Authorization")
    if auth and auth.lower().startswith("bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token:
            return token
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    return cookie or None


def _load_session(token: str, db: Session) -> Optional[SessionToken]:
    sess = db.scalar(select(SessionToken).where(SessionToken.token == token))
    if not sess or not sess.is_active():
        return None
    return sess


def get_current_session(request: Request, db: Session = Depends(get_db)) -> SessionToken:
    token = _get_session_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    sess = _load_session(token, db)
    if not sess or not sess.user:
        logger.info("Rejected missing, revoked or expired session on %s", request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return sess


def require_user(sess: SessionToken = Depends(get_current_session)) -> Users:
    return sess.user


# Optional helpers

def current_user_optional(request: Request, db: Session = Depends(get_db)) -> Optional[Users]:
    token = _get_session_token(request)
    if not token:
        return None
    sess = _load_session(token, db)
    return sess.user if sess else None


def require_roles(roles: Iterable[str]) -> Callable:
    """Factory that returns a dependency enforcing one of the given roles."""
    role_set = set(roles)

    def _dep(user: Users = Depends(require_user)) -> Users:
        if user.role not in role_set:
            logger.warning("User %s with role %s denied; needs one of %s", user.id, user.role, sorted(role_set))
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return _dep


require_admin = require_roles({UserRole.admin.value})
require_staff = require_roles({UserRole.admin.value, UserRole.moderator.value})
