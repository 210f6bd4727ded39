# ascend_backend/services/league_service.py
# Tier ledger access, weekly league matchmaking and weekly score accrual.

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.core.errors import validate_amount
from ascend_backend.core.league_config import LEAGUE_CONFIG
from ascend_backend.core.week_window import current_week_window, to_naive_utc, utc_now
from ascend_backend.models.league_model import League, LeagueMembership, LeagueStatus
from ascend_backend.models.league_schemas import MembershipResult
from ascend_backend.models.tier_model import LeagueTier, TierLedger

logger = logging.getLogger(__name__)


# =========================================
# TIER LEDGER
# =========================================
async def get_tier_ledger(db: AsyncSession, user_id: str) -> Optional[TierLedger]:
    result = await db.execute(
        select(TierLedger)
        .where(TierLedger.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_or_create_tier_ledger(db: AsyncSession, user_id: str) -> TierLedger:
    """
    Returns the user's tier ledger, creating it on first touch.
    Default: BRONZE, all counters at 0.
    Concurrent first touches are resolved by the unique user_id; the loser re-reads.
    Does not commit: the caller owns the transaction.
    """
    ledger = await get_tier_ledger(db, user_id)
    if ledger:
        return ledger

    try:
        async with db.begin_nested():
            ledger = TierLedger(
                user_id=user_id,
                current_tier=LeagueTier.BRONZE,
                highest_tier=LeagueTier.BRONZE,
            )
            db.add(ledger)
    except IntegrityError:
        logger.debug(f"Tier ledger for {user_id} created concurrently, re-reading")
        ledger = await get_tier_ledger(db, user_id)
    return ledger


# =========================================
# MEMBERSHIP LOOKUPS
# =========================================
async def find_week_membership(
    db: AsyncSession, user_id: str, week_start: datetime, week_end: datetime
) -> Optional[LeagueMembership]:
    """The user's membership for a week, in any league at any tier."""
    result = await db.execute(
        select(LeagueMembership).where(
            LeagueMembership.user_id == user_id,
            LeagueMembership.week_start == week_start,
            LeagueMembership.week_end == week_end,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def count_members(db: AsyncSession, league_id: int) -> int:
    result = await db.execute(
        select(func.count(LeagueMembership.id)).where(LeagueMembership.league_id == league_id)
    )
    return result.scalar_one()


async def find_open_league(
    db: AsyncSession, tier: LeagueTier, week_start: datetime, week_end: datetime
) -> Optional[League]:
    """
    Oldest open league for this tier and week that still has room.
    Capacity is advisory: two concurrent joiners can both see the last free slot.
    """
    member_count = func.count(LeagueMembership.id)
    result = await db.execute(
        select(League)
        .outerjoin(LeagueMembership, LeagueMembership.league_id == League.id)
        .where(
            League.tier == tier,
            League.week_start == week_start,
            League.week_end == week_end,
            League.status == LeagueStatus.OPEN,
        )
        .group_by(League.id)
        .having(member_count < LEAGUE_CONFIG["MAX_MEMBERS_PER_LEAGUE"])
        .order_by(League.created_at, League.id)
        .limit(1)
    )
    return result.scalars().first()


# =========================================
# MATCHMAKING
# =========================================
async def ensure_membership(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> MembershipResult:
    """
    Puts the user in a league for the current week (idempotent).
    1. Compute the week window
    2. Load/create the tier ledger
    3. Already joined this week -> return that membership unchanged
    4. Join the oldest open league with room at the user's tier
    5. Otherwise create a new league and join it as its first member
    """
    now_utc = to_naive_utc(now) if now is not None else utc_now()
    week_start, week_end = current_week_window(now_utc)

    ledger = await get_or_create_tier_ledger(db, user_id)

    existing = await find_week_membership(db, user_id, week_start, week_end)
    if existing:
        league = await db.get(League, existing.league_id)
        await db.commit()
        return MembershipResult(league_id=league.id, tier=league.tier, is_newly_joined=False)

    tier = ledger.current_tier
    league = await find_open_league(db, tier, week_start, week_end)

    try:
        # League creation and membership insert stand or fall together
        async with db.begin_nested():
            if league is None:
                league = League(tier=tier, week_start=week_start, week_end=week_end, created_at=now_utc)
                db.add(league)
                await db.flush()
                logger.info(f"🏟️ Created {tier.value} league {league.id} for week {week_start.date()}")

            membership = LeagueMembership(
                league_id=league.id,
                user_id=user_id,
                week_start=week_start,
                week_end=week_end,
                weekly_score=0,
                joined_at=now_utc,
            )
            db.add(membership)
    except IntegrityError:
        # Another request joined this user first: hand back the winner's membership
        winner = await find_week_membership(db, user_id, week_start, week_end)
        if winner is None:
            raise
        league = await db.get(League, winner.league_id)
        await db.commit()
        logger.info(f"User {user_id} joined concurrently, returning league {league.id}")
        return MembershipResult(league_id=league.id, tier=league.tier, is_newly_joined=False)

    league_id = league.id
    await db.commit()
    logger.info(f"✅ User {user_id} joined {tier.value} league {league_id}")
    return MembershipResult(league_id=league_id, tier=tier, is_newly_joined=True)


# =========================================
# SCORE ACCRUAL
# =========================================
async def add_weekly_score(db: AsyncSession, user_id: str, amount: int, now: Optional[datetime] = None) -> bool:
    """
    Atomically adds `amount` to the user's score for the current week.
    Without a membership (or once the league has closed) this is a no-op:
    scoring never creates a membership. Returns whether a row was updated.
    """
    validate_amount(amount)
    week_start, week_end = current_week_window(now)

    open_leagues = select(League.id).where(League.status == LeagueStatus.OPEN)
    result = await db.execute(
        update(LeagueMembership)
        .where(
            LeagueMembership.user_id == user_id,
            LeagueMembership.week_start == week_start,
            LeagueMembership.week_end == week_end,
            LeagueMembership.league_id.in_(open_leagues),
        )
        .values(weekly_score=LeagueMembership.weekly_score + amount)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    updated = result.rowcount > 0
    if not updated:
        logger.debug(f"No open membership for {user_id} this week, skipped +{amount}")
    return updated
