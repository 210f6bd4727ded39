# ascend_backend/services/season_service.py
# Battle pass: season XP accrual, derived tiers, free/premium reward claims.

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.core.errors import (
    AlreadyClaimedError,
    NoActiveSeasonError,
    NoRewardError,
    NotUnlockedError,
    PremiumRequiredError,
    ProgressionError,
    validate_amount,
)
from ascend_backend.core.week_window import season_time_remaining, to_naive_utc, utc_now
from ascend_backend.models.season_model import (
    ClaimTrack,
    Season,
    SeasonClaim,
    SeasonProgress,
    SeasonStatus,
    SeasonTierReward,
)
from ascend_backend.models.season_schemas import (
    ClaimResult,
    SeasonInfo,
    SeasonProgressSummary,
    SeasonTierStatus,
    UserSeasonProgress,
)
from ascend_backend.services.reward_dispatcher import LedgerRewardDispatcher, RewardDispatcher

logger = logging.getLogger(__name__)


def derive_season_tier(season_xp: int, xp_per_tier: int, tier_count: int) -> int:
    """Reached tier = floor(season_xp / xp_per_tier), clamped to [0, tier_count]."""
    return max(0, min(season_xp // xp_per_tier, tier_count))


def reward_source(season_id: int, tier_number: int, track: ClaimTrack) -> str:
    return f"season:{season_id}:tier:{tier_number}:{track.value}"


# =========================================
# LOOKUPS
# =========================================
async def get_active_season(db: AsyncSession, now: Optional[datetime] = None) -> Optional[Season]:
    """The active season covering `now` (latest start wins if several overlap)."""
    now_utc = to_naive_utc(now) if now is not None else utc_now()
    result = await db.execute(
        select(Season)
        .where(
            Season.status == SeasonStatus.ACTIVE,
            Season.starts_at <= now_utc,
            Season.ends_at >= now_utc,
        )
        .order_by(Season.starts_at.desc(), Season.id.desc())
    )
    return result.scalars().first()


async def get_season_tiers(db: AsyncSession, season_id: int) -> List[SeasonTierReward]:
    result = await db.execute(
        select(SeasonTierReward)
        .where(SeasonTierReward.season_id == season_id)
        .order_by(SeasonTierReward.tier_number)
    )
    return list(result.scalars().all())


async def get_season_progress(db: AsyncSession, user_id: str, season_id: int) -> Optional[SeasonProgress]:
    result = await db.execute(
        select(SeasonProgress)
        .where(SeasonProgress.user_id == user_id, SeasonProgress.season_id == season_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_or_create_season_progress(db: AsyncSession, user_id: str, season: Season) -> SeasonProgress:
    """
    Returns the user's progress in `season`, creating an empty record on first touch
    (0 XP, no premium, nothing claimed). Does not commit.
    """
    progress = await get_season_progress(db, user_id, season.id)
    if progress:
        return progress

    try:
        async with db.begin_nested():
            progress = SeasonProgress(user_id=user_id, season_id=season.id, season_xp=0, has_premium=False)
            db.add(progress)
    except IntegrityError:
        logger.debug(f"Season progress for {user_id} created concurrently, re-reading")
        progress = await get_season_progress(db, user_id, season.id)
    return progress


async def get_claimed_tiers(db: AsyncSession, user_id: str, season_id: int) -> Tuple[Set[int], Set[int]]:
    """(claimed_free, claimed_premium) tier numbers."""
    result = await db.execute(
        select(SeasonClaim.tier_number, SeasonClaim.track).where(
            SeasonClaim.user_id == user_id,
            SeasonClaim.season_id == season_id,
        )
    )
    claimed_free, claimed_premium = set(), set()
    for tier_number, track in result.all():
        (claimed_premium if track == ClaimTrack.PREMIUM else claimed_free).add(tier_number)
    return claimed_free, claimed_premium


# =========================================
# XP ACCRUAL
# =========================================
async def add_season_xp(
    db: AsyncSession, user_id: str, amount: int, now: Optional[datetime] = None
) -> Optional[SeasonProgress]:
    """
    Adds XP to the user's progress in the active season with an atomic increment.
    Returns the refreshed progress, or None when no season is running.
    """
    validate_amount(amount)
    now_utc = to_naive_utc(now) if now is not None else utc_now()

    season = await get_active_season(db, now_utc)
    if not season:
        logger.debug(f"No active season, skipped +{amount} season XP for {user_id}")
        await db.commit()
        return None

    progress = await get_or_create_season_progress(db, user_id, season)
    await db.execute(
        update(SeasonProgress)
        .where(SeasonProgress.id == progress.id)
        .values(season_xp=SeasonProgress.season_xp + amount, updated_at=now_utc)
        .execution_options(synchronize_session=False)
    )
    progress = await get_season_progress(db, user_id, season.id)
    await db.commit()
    return progress


# =========================================
# READ MODEL
# =========================================
async def get_user_season_progress(
    db: AsyncSession, user_id: str, now: Optional[datetime] = None
) -> Optional[UserSeasonProgress]:
    """
    Season info, the user's derived tier and claim state, and the full tier table
    annotated with unlock/claim flags. None when no season is running.
    """
    now_utc = to_naive_utc(now) if now is not None else utc_now()

    season = await get_active_season(db, now_utc)
    if not season:
        await db.commit()
        return None

    progress = await get_or_create_season_progress(db, user_id, season)
    tiers = await get_season_tiers(db, season.id)
    claimed_free, claimed_premium = await get_claimed_tiers(db, user_id, season.id)
    await db.commit()

    current_tier = derive_season_tier(progress.season_xp, season.xp_per_tier, season.tier_count)
    if current_tier >= season.tier_count:
        xp_in_tier, xp_to_next_tier = 0, 0
    else:
        xp_in_tier = progress.season_xp % season.xp_per_tier
        xp_to_next_tier = season.xp_per_tier - xp_in_tier

    return UserSeasonProgress(
        season=SeasonInfo(
            id=season.id,
            name=season.name,
            theme=season.theme,
            description=season.description,
            icon=season.icon,
            tier_count=season.tier_count,
            xp_per_tier=season.xp_per_tier,
            starts_at=season.starts_at,
            ends_at=season.ends_at,
        ),
        progress=SeasonProgressSummary(
            season_xp=progress.season_xp,
            current_tier=current_tier,
            xp_in_tier=xp_in_tier,
            xp_to_next_tier=xp_to_next_tier,
            has_premium=progress.has_premium,
            claimed_free=sorted(claimed_free),
            claimed_premium=sorted(claimed_premium),
        ),
        tiers=[
            SeasonTierStatus(
                tier_number=t.tier_number,
                free_reward=t.free_reward,
                premium_reward=t.premium_reward,
                is_milestone=t.is_milestone,
                is_unlocked=current_tier >= t.tier_number,
                is_free_claimed=t.tier_number in claimed_free,
                is_premium_claimed=t.tier_number in claimed_premium,
            )
            for t in tiers
        ],
        time_remaining=season_time_remaining(season.ends_at, now_utc),
    )


# =========================================
# CLAIMS
# =========================================
async def _check_claim(
    db: AsyncSession, user_id: str, tier_number: int, track: ClaimTrack, now_utc: datetime
) -> Tuple[Season, Dict[str, Any]]:
    """
    Validates a claim and returns (season, reward). Checks, in order:
    NoActiveSeason -> NotUnlocked -> PremiumRequired -> AlreadyClaimed -> NoReward.
    """
    season = await get_active_season(db, now_utc)
    if not season:
        raise NoActiveSeasonError("No active season")

    progress = await get_or_create_season_progress(db, user_id, season)
    current_tier = derive_season_tier(progress.season_xp, season.xp_per_tier, season.tier_count)

    if tier_number > current_tier:
        raise NotUnlockedError(f"Tier {tier_number} not unlocked yet (current tier {current_tier})")

    if track == ClaimTrack.PREMIUM and not progress.has_premium:
        raise PremiumRequiredError("Premium pass required")

    claimed_free, claimed_premium = await get_claimed_tiers(db, user_id, season.id)
    if tier_number in (claimed_premium if track == ClaimTrack.PREMIUM else claimed_free):
        raise AlreadyClaimedError(f"Tier {tier_number} {track.value} reward already claimed")

    result = await db.execute(
        select(SeasonTierReward).where(
            SeasonTierReward.season_id == season.id,
            SeasonTierReward.tier_number == tier_number,
        )
    )
    tier = result.scalars().first()
    reward = None
    if tier:
        reward = tier.premium_reward if track == ClaimTrack.PREMIUM else tier.free_reward
    if not reward:
        raise NoRewardError(f"No {track.value} reward for tier {tier_number}")

    return season, reward


async def claim_tier_reward(
    db: AsyncSession,
    user_id: str,
    tier_number: int,
    track: ClaimTrack,
    dispatcher: Optional[RewardDispatcher] = None,
    now: Optional[datetime] = None,
) -> ClaimResult:
    """
    Claims one tier reward on one track.
    The claim row and the reward dispatch commit together; a failed dispatch
    leaves nothing claimed. The claim row's unique constraint rejects double clicks.
    """
    track = ClaimTrack(track)
    dispatcher = dispatcher or LedgerRewardDispatcher()
    now_utc = to_naive_utc(now) if now is not None else utc_now()

    try:
        season, reward = await _check_claim(db, user_id, tier_number, track, now_utc)
    except ProgressionError:
        # Releases the transaction; only a lazily created progress row can be pending
        await db.commit()
        raise

    try:
        async with db.begin_nested():
            db.add(SeasonClaim(
                user_id=user_id,
                season_id=season.id,
                tier_number=tier_number,
                track=track,
                reward=reward,
                claimed_at=now_utc,
            ))
    except IntegrityError:
        # Lost a double-click race: the other request owns this claim
        await db.commit()
        raise AlreadyClaimedError(f"Tier {tier_number} {track.value} reward already claimed")

    try:
        await dispatcher.dispatch(db, user_id, reward, reward_source(season.id, tier_number, track))
    except Exception:
        await db.rollback()
        logger.exception(f"Reward dispatch failed for {user_id} tier {tier_number} ({track.value})")
        raise

    await db.commit()
    logger.info(f"✅ {user_id} claimed tier {tier_number} {track.value} reward in season {season.id}")
    return ClaimResult(season_id=season.id, tier_number=tier_number, track=track, reward=reward)


async def purchase_premium_pass(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> SeasonProgress:
    """Unlocks the premium track for the active season. One-way and idempotent."""
    now_utc = to_naive_utc(now) if now is not None else utc_now()

    season = await get_active_season(db, now_utc)
    if not season:
        await db.commit()
        raise NoActiveSeasonError("No active season")

    progress = await get_or_create_season_progress(db, user_id, season)
    await db.execute(
        update(SeasonProgress)
        .where(SeasonProgress.id == progress.id, SeasonProgress.has_premium == False)  # noqa: E712
        .values(has_premium=True, purchased_at=now_utc, updated_at=now_utc)
        .execution_options(synchronize_session=False)
    )
    progress = await get_season_progress(db, user_id, season.id)
    await db.commit()
    logger.info(f"💎 Premium pass active for {user_id} in season {season.id}")
    return progress
