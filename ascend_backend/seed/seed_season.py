# seed_season.py
# Seeds a battle pass season and its reward ladder.
# Rewards come from season_rewards.csv when present, otherwise from the default ladder.

import logging
import os
from datetime import datetime, timedelta
from typing import List, Optional

import pandas as pd
from sqlmodel import Session, select

from ascend_backend.core.config import BASE_DIR
from ascend_backend.core.database import get_sync_session
from ascend_backend.core.league_config import SEASON_DEFAULTS
from ascend_backend.core.week_window import current_week_window, utc_now
from ascend_backend.models.season_model import Season, SeasonStatus, SeasonTierReward

logger = logging.getLogger(__name__)

SEASON_REWARDS_CSV = os.path.join(BASE_DIR, "season_rewards.csv")
CSV_COLUMNS = [
    "tier_number",
    "free_type", "free_code", "free_amount",
    "premium_type", "premium_code", "premium_amount",
    "is_milestone",
]


def generate_default_tier_rewards(tier_count: int = SEASON_DEFAULTS["TIER_COUNT"]) -> List[dict]:
    """
    Default ladder:
    - every 10th tier: milestone, cosmetic frame (free) + title (premium)
    - every 5th tier:  currency (free) + reward chest (premium)
    - other tiers:     bonus XP (free), currency on even tiers (premium)
    """
    rewards = []
    for n in range(1, tier_count + 1):
        if n % SEASON_DEFAULTS["MILESTONE_EVERY"] == 0:
            free = {"type": "cosmetic", "code": f"season_frame_t{n}", "name": f"Tier {n} Frame"}
            premium = {"type": "title", "code": f"season_title_t{n}", "name": f"Tier {n} Champion"}
            is_milestone = True
        elif n % SEASON_DEFAULTS["MINI_MILESTONE_EVERY"] == 0:
            free = {"type": "currency", "amount": 100}
            premium = {"type": "item", "code": f"season_chest_t{n}", "name": "Reward Chest"}
            is_milestone = False
        else:
            free = {"type": "xp", "amount": 100}
            premium = {"type": "currency", "amount": 50} if n % 2 == 0 else None
            is_milestone = False

        rewards.append({
            "tier_number": n,
            "free_reward": free,
            "premium_reward": premium,
            "is_milestone": is_milestone,
        })
    return rewards


def _reward_from_row(row, prefix: str) -> Optional[dict]:
    reward_type = row.get(f"{prefix}_type")
    if pd.isna(reward_type) or not str(reward_type).strip():
        return None

    reward = {"type": str(reward_type).strip()}
    code = row.get(f"{prefix}_code")
    if not pd.isna(code) and str(code).strip():
        reward["code"] = str(code).strip()
    amount = row.get(f"{prefix}_amount")
    if not pd.isna(amount):
        reward["amount"] = int(amount)
    return reward


def load_tier_rewards_from_csv(csv_path: str) -> List[dict]:
    """
    Reads a reward ladder from CSV. Expected columns:
    tier_number, free_type, free_code, free_amount,
    premium_type, premium_code, premium_amount, is_milestone
    Rows with an invalid tier number are skipped.
    """
    df = pd.read_csv(csv_path)
    logger.info(f"📊 Found {len(df)} rows in {os.path.basename(csv_path)}")

    missing = [c for c in ("tier_number", "free_type") if c not in df.columns]
    if missing:
        raise ValueError(f"Season rewards CSV is missing columns: {missing}")

    rewards = []
    for index, row in df.iterrows():
        try:
            tier_number = int(row["tier_number"])
        except (TypeError, ValueError):
            logger.warning(f"⚠️ Skipping row {index + 1}: invalid tier_number")
            continue

        is_milestone = row.get("is_milestone", False)
        rewards.append({
            "tier_number": tier_number,
            "free_reward": _reward_from_row(row, "free"),
            "premium_reward": _reward_from_row(row, "premium"),
            "is_milestone": False if pd.isna(is_milestone) else bool(is_milestone),
        })
    return rewards


def create_season(
    session: Session,
    name: str,
    starts_at: datetime,
    tier_rewards: List[dict],
    tier_count: int = SEASON_DEFAULTS["TIER_COUNT"],
    xp_per_tier: int = SEASON_DEFAULTS["XP_PER_TIER"],
    length_days: int = SEASON_DEFAULTS["LENGTH_DAYS"],
    theme: Optional[str] = None,
    description: Optional[str] = None,
    icon: Optional[str] = None,
) -> Season:
    """Adds a season and its reward rows. The caller commits."""
    if xp_per_tier <= 0:
        raise ValueError(f"xp_per_tier must be positive, got {xp_per_tier}")
    if tier_count <= 0:
        raise ValueError(f"tier_count must be positive, got {tier_count}")

    season = Season(
        name=name,
        theme=theme,
        description=description,
        icon=icon,
        status=SeasonStatus.ACTIVE,
        tier_count=tier_count,
        xp_per_tier=xp_per_tier,
        starts_at=starts_at,
        ends_at=starts_at + timedelta(days=length_days),
    )
    session.add(season)
    session.flush()

    for reward in tier_rewards:
        if not 1 <= reward["tier_number"] <= tier_count:
            continue
        session.add(SeasonTierReward(season_id=season.id, **reward))
    return season


def seed_season(name: str = "Season 1", csv_path: str = SEASON_REWARDS_CSV) -> Optional[int]:
    """
    Seeds an active season starting this week unless one is already running.
    Returns the id of the running season.
    """
    logger.info("🏆 Seeding battle pass season...")
    now = utc_now()

    with get_sync_session() as session:
        running = session.exec(
            select(Season).where(
                Season.status == SeasonStatus.ACTIVE,
                Season.starts_at <= now,
                Season.ends_at >= now,
            )
        ).first()
        if running:
            logger.info(f"🔁 Season '{running.name}' already active. Skipping.")
            return running.id

        tier_rewards = None
        if os.path.exists(csv_path):
            try:
                tier_rewards = load_tier_rewards_from_csv(csv_path)
            except (ValueError, pd.errors.EmptyDataError) as e:
                logger.warning(f"❌ Could not read {csv_path}: {e}. Falling back to default ladder.")
        if not tier_rewards:
            tier_rewards = generate_default_tier_rewards()

        week_start, _ = current_week_window(now)
        season = create_season(
            session,
            name=name,
            starts_at=week_start,
            tier_rewards=tier_rewards,
            theme="ascend",
            description="Earn XP from every workout and check-in to climb the season ladder.",
            icon="🏔️",
        )
        session.commit()
        logger.info(f"✅ Seeded '{season.name}' with {len(tier_rewards)} reward tiers")
        return season.id


if __name__ == "__main__":
    seed_season()
