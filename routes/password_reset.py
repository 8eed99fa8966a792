# routes/password_reset.py
"""
Password reset routes - forgot password and reset password functionality.
"""
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.settings import RESET_TOKEN_TTL_HOURS
from model.user import Users, UserCredential, SessionToken
from model.password_reset import PasswordResetToken
from schema.auth import (
    ForgotPasswordIn,
    ForgotPasswordOut,
    ResetPasswordIn,
    VerifyResetTokenIn,
    VerifyResetTokenOut,
)
from schema.base import MessageOut
from src.email_service import get_email_service
from src.utils import gen_token_urlsafe, hash_token, hash_password, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

TOKEN_LENGTH = 32


def mask_email(email: str) -> str:
    """Mask email for privacy (u***@example.com)."""
    local, domain = email.split('@')
    if len(local) <= 2:
        masked_local = local[0] + '***'
    else:
        masked_local = local[0] + '***' + local[-1]
    return f"{masked_local}@{domain}"


def cleanup_expired_tokens(db: Session, user_id: str):
    """Drop expired or already used tokens for a user."""
    now = utcnow()
    db.query(PasswordResetToken).filter(
        PasswordResetToken.user_id == user_id,
        (PasswordResetToken.expires_at < now) | (PasswordResetToken.used_at.isnot(None)),
    ).delete(synchronize_session=False)


def find_valid_token(db: Session, raw_token: str):
    row = db.query(PasswordResetToken).filter(
        PasswordResetToken.token_hash == hash_token(raw_token)
    ).first()
    if row is None or not row.is_valid():
        return None
    return row


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordOut,
    responses={200: {"description": "Reset link sent if the account exists"}},
    openapi_extra={"security": []},
)
def forgot_password(body: ForgotPasswordIn, db: Session = Depends(get_db)):
    """
    Request a password reset link.

    The response is identical whether or not the email is registered, so
    the endpoint cannot be used to probe for accounts.
    """
    email = body.email.lower()
    user = db.query(Users).filter(Users.email == email).first()
    if not user:
        logger.info("Password reset requested for unknown email %s", mask_email(email))
        return ForgotPasswordOut()

    cleanup_expired_tokens(db, user.id)

    raw_token = gen_token_urlsafe(TOKEN_LENGTH)
    db.add(PasswordResetToken(
        user_id=user.id,
        token_hash=hash_token(raw_token),
        expires_at=utcnow() + timedelta(hours=RESET_TOKEN_TTL_HOURS),
    ))
    db.commit()

    sent = get_email_service().send_password_reset_email(
        to_email=user.email,
        reset_token=raw_token,
        user_name=user.display_name,
    )
    if not sent:
        logger.error("Password reset email could not be sent to %s", mask_email(email))
    else:
        logger.info("Password reset email sent to %s", mask_email(email))
    return ForgotPasswordOut()


@router.post(
    "/verify-reset-token",
    response_model=VerifyResetTokenOut,
    openapi_extra={"security": []},
)
def verify_reset_token(body: VerifyResetTokenIn, db: Session = Depends(get_db)):
    if find_valid_token(db, body.token) is None:
        return VerifyResetTokenOut(valid=False, message="Invalid or expired reset token")
    return VerifyResetTokenOut(valid=True, message="Token is valid")


@router.post(
    "/reset-password",
    response_model=MessageOut,
    responses={
        200: {"description": "Password updated"},
        400: {"description": "Bad Request - Invalid or expired reset token"},
    },
    openapi_extra={"security": []},
)
def reset_password(body: ResetPasswordIn, db: Session = Depends(get_db)):
    row = find_valid_token(db, body.token)
    if row is None:
        logger.warning("Password reset attempted with an invalid or expired token")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")

    user = row.user
    now = utcnow()
    creds = db.get(UserCredential, user.id)
    if creds is None:
        creds = UserCredential(user_id=user.id, password_hash=hash_password(body.new_password))
        db.add(creds)
    else:
        creds.password_hash = hash_password(body.new_password)
    creds.last_password_change = now
    row.mark_as_used()

    revoked = db.query(SessionToken).filter(
        SessionToken.user_id == user.id,
        SessionToken.revoked_at.is_(None),
    ).update({SessionToken.revoked_at: now}, synchronize_session=False)
    db.commit()
    logger.info("Password reset for user id=%s, %d sessions revoked", user.id, revoked)

    get_email_service().send_password_changed_notification(user.email, user.display_name)
    return MessageOut(message="Password has been reset. Please sign in with your new password.")
