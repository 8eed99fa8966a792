# src/invites.py
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from model.user import InviteCode, Users
from src.utils import utcnow

logger = logging.getLogger(__name__)


def invite_problem(invite: Optional[InviteCode]) -> Optional[str]:
    """Reason the invite cannot be used, or None when it is redeemable."""
    if invite is None or not invite.is_active:
        return "Invalid invite code"
    if invite.expires_at is not None and invite.expires_at < utcnow():
        return "Invite code has expired"
    if invite.usage_limit is not None and invite.usage_count >= invite.usage_limit:
        return "Invite code usage limit reached"
    return None


def find_invite(db: Session, code: str) -> Optional[InviteCode]:
    return db.scalar(select(InviteCode).where(InviteCode.code == code.strip().upper()))


def require_valid_invite(db: Session, code: str) -> InviteCode:
    invite = find_invite(db, code)
    problem = invite_problem(invite)
    if problem:
        logger.info("Invite code %s rejected: %s", code, problem)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)
    return invite


def redeem_invite(invite: InviteCode, user: Users) -> None:
    invite.usage_count = (invite.usage_count or 0) + 1
    user.invite_code_used = invite.code
    logger.info("Invite code %s redeemed by user %s (uses=%s)", invite.code, user.id, invite.usage_count)


def seed_invite_code(db: Session, code: str) -> bool:
    """Create ``code`` with unlimited uses if it does not exist yet."""
    code = code.strip().upper()
    if find_invite(db, code):
        return False
    db.add(InviteCode(code=code, usage_limit=None, usage_count=0, is_active=True, description="Seeded beta code"))
    db.commit()
    logger.info("Seeded invite code %s", code)
    return True
