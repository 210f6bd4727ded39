# ascend_backend/models/xp_schemas.py
# Request/result models for the XP accrual hook.

from typing import List, Optional

from pydantic import BaseModel, Field

from ascend_backend.models.league_schemas import MembershipResult


class XPAccrualRequest(BaseModel):
    amount: int = Field(ge=0)
    join_league: bool = True


class AccrualResult(BaseModel):
    user_id: str
    amount: int
    membership: Optional[MembershipResult] = None
    weekly_score_applied: bool = False
    season_xp_applied: bool = False
    season_xp: Optional[int] = None
    errors: List[str] = []
