from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from schema.base import CamelModel


PrivacyLiteral = Literal["public", "private"]


class UserSummaryOut(CamelModel):
    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileOut(CamelModel):
    id: str
    email: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    collection_privacy: PrivacyLiteral = "public"
    role: str = "user"
    subscription_tier: str = "free"
    invite_code_used: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class PublicProfileOut(CamelModel):
    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    collection_privacy: PrivacyLiteral = "public"
    created_at: datetime
    follower_count: int = 0
    following_count: int = 0
    coin_count: int = 0
    is_following: bool = False


class ProfileUpdateIn(CamelModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=512)
    collection_privacy: Optional[PrivacyLiteral] = None


class AvatarUploadOut(CamelModel):
    avatar_url: Optional[str] = None
    storage_key: str


class PreferencesOut(CamelModel):
    email_notifications: bool = True
    marketing_emails: bool = False


class SettingsOut(CamelModel):
    id: str
    username: Optional[str] = None
    email: str
    collection_privacy: PrivacyLiteral = "public"
    role: str = "user"
    created_at: datetime
    preferences: PreferencesOut


class SettingsUpdateIn(CamelModel):
    collection_privacy: Optional[PrivacyLiteral] = None
    email_notifications: Optional[bool] = None
    marketing_emails: Optional[bool] = None


__all__ = [
    "UserSummaryOut",
    "ProfileOut",
    "PublicProfileOut",
    "ProfileUpdateIn",
    "AvatarUploadOut",
    "PreferencesOut",
    "SettingsOut",
    "SettingsUpdateIn",
]
