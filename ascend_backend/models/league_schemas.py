# ascend_backend/models/league_schemas.py
# Read models returned by the league services and routes.

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ascend_backend.models.league_model import LeagueStatus, LeagueZone
from ascend_backend.models.tier_model import LeagueTier


class TierInfo(BaseModel):
    tier: LeagueTier
    name: str
    color: str
    icon: str
    rank: int


class MembershipResult(BaseModel):
    league_id: int
    tier: LeagueTier
    is_newly_joined: bool


class StandingsMember(BaseModel):
    membership_id: int
    user_id: str
    weekly_score: int
    joined_at: datetime
    rank: int
    zone: LeagueZone


class LeagueSummary(BaseModel):
    id: int
    tier: LeagueTier
    status: LeagueStatus
    week_start: datetime
    week_end: datetime
    member_count: int


class Standings(BaseModel):
    league: LeagueSummary
    members: List[StandingsMember]


class UserLeagueStats(BaseModel):
    weekly_score: int = 0
    rank: Optional[int] = None
    zone: LeagueZone = LeagueZone.SAFE


class LifetimeLeagueStats(BaseModel):
    current_tier: LeagueTier
    highest_tier: LeagueTier
    weeks_participated: int
    total_promotions: int
    top_3_finishes: int
    first_place_wins: int


class UserLeagueStatus(BaseModel):
    in_league: bool
    league: Optional[LeagueSummary] = None
    tier_info: Optional[TierInfo] = None
    user_stats: UserLeagueStats
    overall_stats: LifetimeLeagueStats
    time_remaining: dict


class LeagueHistoryEntry(BaseModel):
    league_id: int
    week_start: datetime
    week_end: datetime
    tier: LeagueTier
    final_rank: int
    weekly_score: int
    zone: LeagueZone
    promoted: bool
    demoted: bool
    tier_after: LeagueTier
    badge_earned: Optional[str] = None


class LeagueRolloverResult(BaseModel):
    league_id: int
    tier: LeagueTier
    already_closed: bool = False
    members_processed: int = 0
    members_skipped: int = 0
    promoted: List[str] = []
    demoted: List[str] = []


class RolloverFailure(BaseModel):
    league_id: int
    error: str


class RolloverSummary(BaseModel):
    run_at: datetime
    leagues_found: int
    leagues_closed: int
    leagues_already_closed: int
    results: List[LeagueRolloverResult]
    failures: List[RolloverFailure]
