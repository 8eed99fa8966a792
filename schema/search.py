from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from schema.base import CamelModel
from schema.user import UserSummaryOut


class CoinSearchHit(CamelModel):
    id: str
    title: str
    year: int
    country: str
    unit: Optional[str] = None
    organization: Optional[str] = None
    condition: Optional[str] = None
    image_url: Optional[str] = None
    user: Optional[UserSummaryOut] = None
    like_count: int = 0
    open_to_trade: bool = False
    created_at: datetime


class UserSearchHit(UserSummaryOut):
    bio: Optional[str] = None
    location: Optional[str] = None


class SearchFacets(CamelModel):
    countries: List[str]
    units: List[str]
    organizations: List[str]
    conditions: List[str]


class AdvancedSearchOut(CamelModel):
    results: List[CoinSearchHit]
    total: int
    facets: SearchFacets
