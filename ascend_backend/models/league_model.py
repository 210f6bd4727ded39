# ascend_backend/models/league_model.py
# Weekly league cohorts, their memberships, and the per-week history written at rollover.

from enum import Enum
from typing import List, Optional

from pydantic import NaiveDatetime
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from ascend_backend.core.week_window import utc_now
from ascend_backend.models.tier_model import LeagueTier


class LeagueStatus(str, Enum):
    """Rollover state machine: OPEN -> CLOSED."""
    OPEN = "open"
    CLOSED = "closed"


class LeagueZone(str, Enum):
    PROMOTION = "promotion"
    SAFE = "safe"
    DEMOTION = "demotion"


class League(SQLModel, table=True):
    """
    A capacity-bounded cohort competing within one tier for one week.
    Several leagues may exist per (tier, week); none are ever deleted.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    tier: LeagueTier = Field(index=True)
    week_start: NaiveDatetime = Field(index=True)
    week_end: NaiveDatetime

    status: LeagueStatus = Field(default=LeagueStatus.OPEN, index=True)
    created_at: NaiveDatetime = Field(default_factory=utc_now)
    closed_at: Optional[NaiveDatetime] = Field(default=None)

    members: List["LeagueMembership"] = Relationship(back_populates="league")


class LeagueMembership(SQLModel, table=True):
    """
    A user's entry in one league for one week.
    week_start/week_end are copied from the league so the database can enforce
    one membership per user per week.
    """
    __table_args__ = (
        UniqueConstraint("user_id", "week_start", "week_end", name="uq_membership_user_week"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    user_id: str = Field(index=True)
    week_start: NaiveDatetime
    week_end: NaiveDatetime

    weekly_score: int = Field(default=0)  # Increment-only until the league closes
    joined_at: NaiveDatetime = Field(default_factory=utc_now)

    league: Optional[League] = Relationship(back_populates="members")


class LeagueHistory(SQLModel, table=True):
    """
    Final result of one member in one closed league.
    Its existence also marks the member as already transitioned for that week.
    """
    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="uq_history_league_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    user_id: str = Field(index=True)
    week_start: NaiveDatetime
    week_end: NaiveDatetime

    tier: LeagueTier
    final_rank: int
    weekly_score: int
    zone: LeagueZone
    promoted: bool = Field(default=False)
    demoted: bool = Field(default=False)
    tier_after: LeagueTier
    badge_earned: Optional[str] = Field(default=None)

    created_at: NaiveDatetime = Field(default_factory=utc_now)
