# routes/auth/registration.py
"""
Onboarding endpoints - invite validation, profile completion, profile edits
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from config.db import get_db
from config.dependencies import require_user
from model.user import Users
from schema.auth import InviteCodeIn, InviteValidateOut, CompleteProfileIn
from schema.user import ProfileOut, ProfileUpdateIn
from src.invites import require_valid_invite, redeem_invite
from src.route_helpers import apply_profile_changes, build_profile
from src.storage import StorageBackend, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/validate-invite",
    response_model=InviteValidateOut,
    responses={
        200: {"description": "Invite code is valid"},
        400: {"description": "Bad Request - Invalid, expired or exhausted invite code"},
    },
    openapi_extra={"security": []},
)
def validate_invite(body: InviteCodeIn, db: Session = Depends(get_db)):
    invite = require_valid_invite(db, body.code)
    return InviteValidateOut(valid=True, code=invite.code)


@router.post(
    "/complete-profile",
    response_model=ProfileOut,
    responses={
        200: {"description": "Profile completed"},
        400: {"description": "Bad Request - Username taken or invite code rejected"},
        401: {"description": "Unauthorized"},
    },
)
def complete_profile(
    body: CompleteProfileIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    logger.info("Completing profile for user id=%s username=%s", user.id, body.username)

    taken = db.query(Users).filter(Users.username == body.username, Users.id != user.id).first()
    if taken:
        logger.warning("Username already taken: %s", body.username)
        raise HTTPException(status_code=400, detail="Username is already taken")

    if body.invite_code:
        invite = require_valid_invite(db, body.invite_code)
        redeem_invite(invite, user)

    user.username = body.username
    user.display_name = body.display_name
    db.commit()
    db.refresh(user)
    return build_profile(user, storage)


@router.patch("/profile", response_model=ProfileOut)
def update_profile(
    body: ProfileUpdateIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    changes = apply_profile_changes(
        user, body.model_dump(exclude_unset=True, include={"display_name", "bio", "location", "avatar_url"})
    )
    db.commit()
    db.refresh(user)
    logger.info("Profile updated for user id=%s fields=%s", user.id, sorted(changes))
    return build_profile(user, storage)
