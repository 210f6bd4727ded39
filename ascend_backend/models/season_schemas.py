# ascend_backend/models/season_schemas.py
# Request and read models for the battle pass.

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ascend_backend.models.season_model import ClaimTrack


class SeasonInfo(BaseModel):
    id: int
    name: str
    theme: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    tier_count: int
    xp_per_tier: int
    starts_at: datetime
    ends_at: datetime


class SeasonProgressSummary(BaseModel):
    season_xp: int
    current_tier: int
    xp_in_tier: int
    xp_to_next_tier: int
    has_premium: bool
    claimed_free: List[int]
    claimed_premium: List[int]


class SeasonTierStatus(BaseModel):
    tier_number: int
    free_reward: Optional[Dict[str, Any]] = None
    premium_reward: Optional[Dict[str, Any]] = None
    is_milestone: bool
    is_unlocked: bool
    is_free_claimed: bool
    is_premium_claimed: bool


class UserSeasonProgress(BaseModel):
    season: SeasonInfo
    progress: SeasonProgressSummary
    tiers: List[SeasonTierStatus]
    time_remaining: dict


class ClaimRequest(BaseModel):
    tier_number: int
    track: ClaimTrack = ClaimTrack.FREE


class ClaimResult(BaseModel):
    season_id: int
    tier_number: int
    track: ClaimTrack
    reward: Dict[str, Any]
