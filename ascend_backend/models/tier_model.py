# ascend_backend/models/tier_model.py
# Defines the competitive tiers and the per-user tier ledger (lifetime league stats).

from enum import Enum
from typing import Optional

from pydantic import NaiveDatetime
from sqlmodel import Field, SQLModel

from ascend_backend.core.week_window import utc_now


class LeagueTier(str, Enum):
    """Competitive tiers, lowest to highest. Declaration order is the tier order."""
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"
    DIAMOND = "DIAMOND"
    OBSIDIAN = "OBSIDIAN"
    LEGENDARY = "LEGENDARY"


class TierLedger(SQLModel, table=True):
    """
    One row per user: current tier, high-water mark and lifetime counters.
    Created lazily (see league_service.get_or_create_tier_ledger).
    Only the weekly rollover changes tiers and counters.
    """
    __tablename__ = "league_stats"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, unique=True)

    current_tier: LeagueTier = Field(default=LeagueTier.BRONZE)
    highest_tier: LeagueTier = Field(default=LeagueTier.BRONZE)

    # Lifetime counters
    weeks_participated: int = Field(default=0)
    total_promotions: int = Field(default=0)
    top_3_finishes: int = Field(default=0)
    first_place_wins: int = Field(default=0)

    created_at: NaiveDatetime = Field(default_factory=utc_now)
    updated_at: NaiveDatetime = Field(default_factory=utc_now)
