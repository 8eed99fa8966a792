# routes/profiles.py
"""
Public profiles, the caller's own profile and avatar, and account settings.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, current_user_optional
from config.media_config import MediaConfig
from model.coin import Coin
from model.user import Users
from schema.user import (
    AvatarUploadOut,
    PreferencesOut,
    ProfileOut,
    ProfileUpdateIn,
    PublicProfileOut,
    SettingsOut,
    SettingsUpdateIn,
)
from src.media_processor import read_image_upload
from src.route_helpers import (
    apply_profile_changes,
    build_profile,
    follower_count,
    following_count,
    get_user_by_username_or_404,
    is_following,
    public_coins_clause,
)
from src.storage import StorageBackend, StorageError, build_storage_key, get_storage, signed_url_or_none
from src.utils import unix_millis

logger = logging.getLogger(__name__)

router = APIRouter()


# ------------------------------------------------------------------
# Public profile
# ------------------------------------------------------------------
@router.get(
    "/users/{username}",
    response_model=PublicProfileOut,
    responses={404: {"description": "User not found"}},
)
def get_public_profile(
    username: str,
    viewer: Optional[Users] = Depends(current_user_optional),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    user = get_user_by_username_or_404(db, username)
    coin_count = db.query(func.count(Coin.id)).filter(
        Coin.user_id == user.id, *public_coins_clause()
    ).scalar() or 0

    return PublicProfileOut(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar_url=signed_url_or_none(storage, user.avatar_url),
        bio=user.bio,
        location=user.location,
        collection_privacy=user.collection_privacy,
        created_at=user.created_at,
        follower_count=follower_count(db, user.id),
        following_count=following_count(db, user.id),
        coin_count=coin_count,
        is_following=is_following(db, viewer.id if viewer else None, user.id),
    )


# ------------------------------------------------------------------
# Own profile
# ------------------------------------------------------------------
@router.get("/profiles/me", response_model=ProfileOut)
def get_my_profile(user: Users = Depends(require_user), storage: StorageBackend = Depends(get_storage)):
    return build_profile(user, storage)


@router.patch("/profiles/me", response_model=ProfileOut)
def update_my_profile(
    body: ProfileUpdateIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    changes = apply_profile_changes(user, body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(user)
    logger.info("Profile updated for user id=%s fields=%s", user.id, sorted(changes))
    return build_profile(user, storage)


@router.post(
    "/profiles/me/avatar",
    response_model=AvatarUploadOut,
    responses={
        400: {"description": "Bad Request - Unsupported file type"},
        413: {"description": "Payload Too Large"},
        503: {"description": "Storage or database unavailable"},
    },
)
async def upload_avatar(
    file: UploadFile = File(...),
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    logger.info("Avatar upload started: user=%s file=%s", user.id, file.filename)
    image = await read_image_upload(file, avatar=True)
    key = build_storage_key(MediaConfig.AVATAR_FOLDER, user.id, f"{unix_millis()}-{image.filename}")

    try:
        await storage.save(image.data, key, image.content_type)
    except StorageError:
        logger.error("Avatar upload failed for user=%s", user.id, exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to store avatar")

    try:
        user.avatar_url = key
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Could not save avatar key for user=%s; removing %s", user.id, key, exc_info=True)
        await storage.delete(key)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to update profile")

    logger.info("Avatar stored for user=%s at %s", user.id, key)
    return AvatarUploadOut(avatar_url=signed_url_or_none(storage, key), storage_key=key)


# ------------------------------------------------------------------
# Settings
# ------------------------------------------------------------------
def _settings_out(user: Users) -> SettingsOut:
    return SettingsOut(
        id=user.id,
        username=user.username,
        email=user.email,
        collection_privacy=user.collection_privacy,
        role=user.role,
        created_at=user.created_at,
        preferences=PreferencesOut(
            email_notifications=bool(user.email_notifications),
            marketing_emails=bool(user.marketing_emails),
        ),
    )


@router.get("/settings/me", response_model=SettingsOut)
def get_settings(user: Users = Depends(require_user)):
    return _settings_out(user)


@router.patch(
    "/settings/me",
    response_model=SettingsOut,
    responses={400: {"description": "No settings provided"}},
)
def update_settings(
    body: SettingsUpdateIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No settings provided")

    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("Settings updated for user id=%s fields=%s", user.id, sorted(changes))
    return _settings_out(user)
