# ascend_backend/models/season_model.py
# Defines Season (battle pass definition), its reward ladder, per-user progress and claims.

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import NaiveDatetime
from sqlalchemy import UniqueConstraint
from sqlmodel import JSON, Column, Field, SQLModel

from ascend_backend.core.week_window import utc_now


class SeasonStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"


class ClaimTrack(str, Enum):
    """The two independent reward tracks of a season."""
    FREE = "free"
    PREMIUM = "premium"


class RewardType(str, Enum):
    XP = "xp"
    ITEM = "item"
    COSMETIC = "cosmetic"
    CURRENCY = "currency"
    TITLE = "title"


class Season(SQLModel, table=True):
    """
    A time-boxed XP ladder with `tier_count` reward tiers, `xp_per_tier` XP apart.
    Authored by the seed scripts; read-only to the services.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    theme: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    icon: Optional[str] = Field(default=None)
    status: SeasonStatus = Field(default=SeasonStatus.ACTIVE, index=True)

    tier_count: int
    xp_per_tier: int

    starts_at: NaiveDatetime
    ends_at: NaiveDatetime
    created_at: NaiveDatetime = Field(default_factory=utc_now)


class SeasonTierReward(SQLModel, table=True):
    """Rewards for one tier of a season. `premium_reward` is optional."""
    __table_args__ = (
        UniqueConstraint("season_id", "tier_number", name="uq_season_tier"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    tier_number: int

    # Reward descriptors: {"type": "xp|item|cosmetic|currency|title", "code"?, "amount"?, "name"?}
    free_reward: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    premium_reward: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    is_milestone: bool = Field(default=False)


class SeasonProgress(SQLModel, table=True):
    """
    A user's XP in one season. The reached tier is always derived from
    season_xp (season_service.derive_season_tier) and never stored.
    """
    __table_args__ = (
        UniqueConstraint("user_id", "season_id", name="uq_progress_user_season"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    season_id: int = Field(foreign_key="season.id", index=True)

    season_xp: int = Field(default=0)
    has_premium: bool = Field(default=False)  # One-way: set by purchase, never cleared
    purchased_at: Optional[NaiveDatetime] = Field(default=None)

    created_at: NaiveDatetime = Field(default_factory=utc_now)
    updated_at: NaiveDatetime = Field(default_factory=utc_now)


class SeasonClaim(SQLModel, table=True):
    """
    Durable proof that a tier reward was claimed on a track.
    The unique constraint turns "append to claimed set" into a conditional write.
    """
    __table_args__ = (
        UniqueConstraint("user_id", "season_id", "tier_number", "track", name="uq_claim_user_tier_track"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    tier_number: int
    track: ClaimTrack
    reward: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    claimed_at: NaiveDatetime = Field(default_factory=utc_now)


class RewardGrant(SQLModel, table=True):
    """Rewards handed out by the ledger dispatcher, one row per (user, reward code, source)."""
    __table_args__ = (
        UniqueConstraint("user_id", "reward_code", "source", name="uq_grant_user_code_source"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    reward_type: RewardType
    reward_code: str
    amount: Optional[int] = Field(default=None)
    source: str
    granted_at: NaiveDatetime = Field(default_factory=utc_now)
