# ascend_backend/services/rollover_service.py
# Weekly rollover: freezes final standings, applies promotions/demotions to the
# tier ledger and closes each league. The only writer of tier transitions.

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.core.config import ROLLOVER_GRACE_SECONDS
from ascend_backend.core.errors import LeagueNotFoundError, RolloverNotDueError
from ascend_backend.core.league_config import (
    LEAGUE_CONFIG,
    get_next_tier,
    get_previous_tier,
    tier_rank,
)
from ascend_backend.core.week_window import time_until_week_end, to_naive_utc, utc_now
from ascend_backend.models.league_model import (
    League,
    LeagueHistory,
    LeagueMembership,
    LeagueStatus,
    LeagueZone,
)
from ascend_backend.models.league_schemas import (
    LeagueRolloverResult,
    RolloverFailure,
    RolloverSummary,
)
from ascend_backend.models.tier_model import TierLedger
from ascend_backend.services.league_service import get_or_create_tier_ledger
from ascend_backend.services.ranking import RankedMember, rank_members

logger = logging.getLogger(__name__)


def _badge_for(rank: int, league: League) -> Optional[str]:
    tier_name = league.tier.value.lower()
    if rank == 1:
        return f"{tier_name}_champion"
    if rank <= LEAGUE_CONFIG["TOP_FINISH_THRESHOLD"]:
        return f"{tier_name}_podium"
    return None


async def _load_ledgers(db: AsyncSession, user_ids: List[str]) -> Dict[str, TierLedger]:
    if not user_ids:
        return {}
    result = await db.execute(
        select(TierLedger)
        .where(TierLedger.user_id.in_(user_ids))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {ledger.user_id: ledger for ledger in result.scalars().all()}


def _apply_transition(ledger: TierLedger, member: RankedMember, now: datetime) -> Dict[str, bool]:
    """
    Mutates one ledger for one finished week.
    - promotion zone: up one tier (no-op at the top), counts a promotion
    - demotion zone:  down one tier (no-op at the bottom)
    - everyone:       weeks played, podium/first place counters, high-water mark
    """
    promoted = demoted = False

    if member.zone == LeagueZone.PROMOTION:
        next_tier = get_next_tier(ledger.current_tier)
        if next_tier:
            ledger.current_tier = next_tier
            ledger.total_promotions += 1
            promoted = True
    elif member.zone == LeagueZone.DEMOTION:
        previous_tier = get_previous_tier(ledger.current_tier)
        if previous_tier:
            ledger.current_tier = previous_tier
            demoted = True

    ledger.weeks_participated += 1
    if member.rank <= LEAGUE_CONFIG["TOP_FINISH_THRESHOLD"]:
        ledger.top_3_finishes += 1
    if member.rank == 1:
        ledger.first_place_wins += 1
    if tier_rank(ledger.current_tier) > tier_rank(ledger.highest_tier):
        ledger.highest_tier = ledger.current_tier
    ledger.updated_at = now

    return {"promoted": promoted, "demoted": demoted}


async def _apply_final_standings(db: AsyncSession, league: League, now: datetime) -> LeagueRolloverResult:
    members_result = await db.execute(
        select(LeagueMembership)
        .where(LeagueMembership.league_id == league.id)
        .execution_options(populate_existing=True)
    )
    ranked = rank_members(members_result.scalars().all(), league.tier)

    # Members with a history row were already transitioned for this league
    history_result = await db.execute(
        select(LeagueHistory.user_id).where(LeagueHistory.league_id == league.id)
    )
    already_done = set(history_result.scalars().all())

    pending = [m for m in ranked if m.user_id not in already_done]
    ledgers = await _load_ledgers(db, [m.user_id for m in pending])

    outcome = LeagueRolloverResult(
        league_id=league.id,
        tier=league.tier,
        members_skipped=len(ranked) - len(pending),
    )

    for member in pending:
        ledger = ledgers.get(member.user_id)
        if ledger is None:
            ledger = await get_or_create_tier_ledger(db, member.user_id)

        transition = _apply_transition(ledger, member, now)
        db.add(ledger)
        db.add(LeagueHistory(
            league_id=league.id,
            user_id=member.user_id,
            week_start=league.week_start,
            week_end=league.week_end,
            tier=league.tier,
            final_rank=member.rank,
            weekly_score=member.weekly_score,
            zone=member.zone,
            promoted=transition["promoted"],
            demoted=transition["demoted"],
            tier_after=ledger.current_tier,
            badge_earned=_badge_for(member.rank, league),
            created_at=now,
        ))

        outcome.members_processed += 1
        if transition["promoted"]:
            outcome.promoted.append(member.user_id)
        if transition["demoted"]:
            outcome.demoted.append(member.user_id)

    return outcome


# =========================================
# SINGLE LEAGUE
# =========================================
async def rollover_league(
    session_factory, league_id: int, now: Optional[datetime] = None, force: bool = False
) -> LeagueRolloverResult:
    """
    Closes one league and applies its final standings, all in one transaction.
    The conditional OPEN -> CLOSED update is the idempotence barrier: a second or
    concurrent run finds nothing to close and changes nothing. Any failure rolls
    back the closed flag too, so the next run retries cleanly.
    """
    now_utc = to_naive_utc(now) if now is not None else utc_now()

    async with session_factory() as db:
        async with db.begin():
            league = await db.get(League, league_id, populate_existing=True)
            if not league:
                raise LeagueNotFoundError(f"League {league_id} not found")

            if league.status == LeagueStatus.CLOSED:
                logger.info(f"League {league_id} already closed, nothing to do")
                return LeagueRolloverResult(league_id=league.id, tier=league.tier, already_closed=True)

            if not force and league.week_end >= now_utc:
                raise RolloverNotDueError(
                    f"League {league_id} week ends {league.week_end.isoformat()}, not finished yet"
                )

            closed = await db.execute(
                update(League)
                .where(League.id == league_id, League.status == LeagueStatus.OPEN)
                .values(status=LeagueStatus.CLOSED, closed_at=now_utc)
                .execution_options(synchronize_session=False)
            )
            if closed.rowcount == 0:
                logger.info(f"League {league_id} closed by a concurrent rollover")
                return LeagueRolloverResult(league_id=league.id, tier=league.tier, already_closed=True)

            outcome = await _apply_final_standings(db, league, now_utc)

    logger.info(
        f"🏁 League {league_id} ({league.tier.value}) closed: {outcome.members_processed} members, "
        f"{len(outcome.promoted)} promoted, {len(outcome.demoted)} demoted"
    )
    return outcome


# =========================================
# WEEKLY BATCH
# =========================================
async def find_due_leagues(db: AsyncSession, now: datetime) -> List[int]:
    """Open leagues whose week has fully elapsed, oldest week first."""
    result = await db.execute(
        select(League.id)
        .where(League.status == LeagueStatus.OPEN, League.week_end < now)
        .order_by(League.week_start, League.id)
    )
    return list(result.scalars().all())


async def run_weekly_rollover(session_factory, now: Optional[datetime] = None) -> RolloverSummary:
    """
    Rolls over every due league. Each league is its own transaction: one
    failing league is logged and reported, the others still close.
    Safe to re-run: closed leagues are no longer due.
    """
    now_utc = to_naive_utc(now) if now is not None else utc_now()

    async with session_factory() as db:
        league_ids = await find_due_leagues(db, now_utc)

    results: List[LeagueRolloverResult] = []
    failures: List[RolloverFailure] = []

    for league_id in league_ids:
        try:
            results.append(await rollover_league(session_factory, league_id, now=now_utc))
        except Exception as e:
            logger.exception(f"Rollover failed for league {league_id}")
            failures.append(RolloverFailure(league_id=league_id, error=str(e)))

    summary = RolloverSummary(
        run_at=now_utc,
        leagues_found=len(league_ids),
        leagues_closed=sum(1 for r in results if not r.already_closed),
        leagues_already_closed=sum(1 for r in results if r.already_closed),
        results=results,
        failures=failures,
    )
    logger.info(
        f"📊 Weekly rollover: {summary.leagues_closed}/{summary.leagues_found} leagues closed, "
        f"{len(failures)} failed"
    )
    return summary


async def weekly_rollover_loop(session_factory):
    """
    In-process scheduler: sleeps until the current week window ends (plus a grace
    period) and runs the weekly rollover. Production deployments may use cron instead.
    """
    while True:
        seconds_until_rollover = time_until_week_end().total_seconds() + ROLLOVER_GRACE_SECONDS
        logger.info(f"⏳ Next weekly rollover in {int(seconds_until_rollover)}s")
        await asyncio.sleep(seconds_until_rollover)

        try:
            await run_weekly_rollover(session_factory)
        except Exception:
            logger.exception("Weekly rollover run failed, retrying next window")
