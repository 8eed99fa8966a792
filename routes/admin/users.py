# routes/admin/users.py
"""
Admin account maintenance: delete a user, reset or check a password.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from config.db import get_db
from config.dependencies import require_admin
from model.user import Users, UserCredential, SessionToken
from schema.admin import AdminResetPasswordIn, DeleteUserOut, VerifyPasswordIn, VerifyPasswordOut
from schema.base import SuccessOut
from src.route_helpers import get_user_by_username_or_404
from src.utils import hash_password, verify_password, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.delete(
    "/users/{username}",
    response_model=DeleteUserOut,
    responses={
        200: {"description": "User and owned data deleted"},
        403: {"description": "Forbidden - Admin access required"},
        404: {"description": "User not found"},
    },
)
def delete_user(username: str, admin: Users = Depends(require_admin), db: Session = Depends(get_db)):
    user = get_user_by_username_or_404(db, username)
    user_id = user.id
    db.delete(user)
    db.commit()
    logger.warning("Admin %s deleted user %s (%s)", admin.id, user_id, username)
    return DeleteUserOut(deleted_user_id=user_id)


@router.post(
    "/users/{username}/reset-password",
    response_model=SuccessOut,
    responses={
        403: {"description": "Forbidden - Admin access required"},
        404: {"description": "User not found"},
    },
)
def admin_reset_password(
    username: str,
    body: AdminResetPasswordIn,
    admin: Users = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = get_user_by_username_or_404(db, username)
    now = utcnow()
    creds = db.get(UserCredential, user.id)
    if creds is None:
        db.add(UserCredential(user_id=user.id, password_hash=hash_password(body.value), last_password_change=now))
    else:
        creds.password_hash = hash_password(body.value)
        creds.last_password_change = now

    revoked = db.query(SessionToken).filter(
        SessionToken.user_id == user.id,
        SessionToken.revoked_at.is_(None),
    ).update({SessionToken.revoked_at: now}, synchronize_session=False)
    db.commit()
    logger.warning("Admin %s reset password for user %s; %d sessions revoked", admin.id, user.id, revoked)
    return SuccessOut()


@router.post(
    "/verify-password/{username}",
    response_model=VerifyPasswordOut,
    responses={404: {"description": "User not found"}},
)
def admin_verify_password(
    username: str,
    body: VerifyPasswordIn,
    admin: Users = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = get_user_by_username_or_404(db, username)
    creds = db.get(UserCredential, user.id)
    valid = bool(creds and verify_password(body.password, creds.password_hash))
    logger.info("Admin %s verified password for user %s: %s", admin.id, user.id, valid)
    return VerifyPasswordOut(valid=valid, user_id=user.id)
