# routes/auth/authentication.py
"""
Authentication endpoints - sign up, sign in, sign out, current user
"""
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy import select
from sqlalchemy.orm import Session
import logging

from config.db import get_db
from config.dependencies import get_current_session, require_user
from config.settings import SESSION_TTL_DAYS, SESSION_COOKIE_NAME, APP_ENV
from model.user import Users, UserCredential, SessionToken
from schema.auth import SignUpIn, SignInIn, AuthOut
from schema.base import SuccessOut
from schema.user import ProfileOut
from src.route_helpers import build_profile
from src.storage import StorageBackend, get_storage
from src.utils import gen_token_urlsafe, hash_password, verify_password, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def issue_session(db: Session, user: Users, request: Request, response: Response) -> SessionToken:
    """Create a session row and mirror its token into the session cookie."""
    sess = SessionToken(
        user_id=user.id,
        token=gen_token_urlsafe(32),
        user_agent=(request.headers.get("user-agent") or "")[:255] or None,
        ip_addr=request.client.host if request.client else None,
        expires_at=utcnow() + timedelta(days=SESSION_TTL_DAYS),
    )
    db.add(sess)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        sess.token,
        max_age=SESSION_TTL_DAYS * 24 * 3600,
        httponly=True,
        secure=APP_ENV == "production",
        samesite="lax",
    )
    return sess


@router.post(
    "/sign-up/email",
    response_model=AuthOut,
    status_code=201,
    responses={
        201: {"description": "Account created"},
        400: {"description": "Bad Request - Validation error"},
        409: {"description": "Conflict - Email already in use"},
    },
    openapi_extra={"security": []},
)
def sign_up(
    body: SignUpIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    email = body.email.lower()
    logger.info("Sign-up attempt for email=%s", email)
    if db.scalar(select(Users).where(Users.email == email)):
        logger.warning("Email already in use: %s", email)
        raise HTTPException(status_code=409, detail="Email already in use")

    u = Users(email=email, display_name=body.name)
    db.add(u)
    db.flush()
    db.add(UserCredential(user_id=u.id, password_hash=hash_password(body.password), last_password_change=utcnow()))
    sess = issue_session(db, u, request, response)
    db.commit()
    logger.info("User created with id=%s", u.id)
    return AuthOut(token=sess.token, user=build_profile(u, storage))


@router.post(
    "/sign-in/email",
    response_model=AuthOut,
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Unauthorized - Invalid email or password"},
    },
    openapi_extra={"security": []},
)
def sign_in(
    body: SignInIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    email = body.email.lower()
    logger.info("Sign-in attempt for email=%s", email)
    u = db.scalar(select(Users).where(Users.email == email))
    if not u or not u.creds or not verify_password(body.password, u.creds.password_hash):
        logger.warning("Invalid sign-in attempt for email=%s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    sess = issue_session(db, u, request, response)
    db.commit()
    logger.info("Sign-in successful for user id=%s", u.id)
    return AuthOut(token=sess.token, user=build_profile(u, storage))


@router.post("/sign-out", response_model=SuccessOut)
def sign_out(
    response: Response,
    sess: SessionToken = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    sess.revoked_at = utcnow()
    db.commit()
    response.delete_cookie(SESSION_COOKIE_NAME)
    logger.info("Session %s revoked for user id=%s", sess.id, sess.user_id)
    return SuccessOut()


@router.get("/me", response_model=ProfileOut)
def me(user: Users = Depends(require_user), storage: StorageBackend = Depends(get_storage)):
    return build_profile(user, storage)
