# ascend_backend/services/standings_service.py
# Read-side projections: league standings, a user's weekly status, and league history.

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.core.errors import LeagueNotFoundError
from ascend_backend.core.league_config import get_tier_info
from ascend_backend.core.week_window import current_week_window, split_duration, time_until_week_end
from ascend_backend.models.league_model import League, LeagueHistory, LeagueMembership
from ascend_backend.models.league_schemas import (
    LeagueHistoryEntry,
    LeagueSummary,
    LifetimeLeagueStats,
    Standings,
    StandingsMember,
    TierInfo,
    UserLeagueStats,
    UserLeagueStatus,
)
from ascend_backend.services.league_service import find_week_membership, get_or_create_tier_ledger
from ascend_backend.services.ranking import rank_members

HISTORY_MAX_LIMIT = 50


async def _league_members(db: AsyncSession, league_id: int) -> List[LeagueMembership]:
    result = await db.execute(
        select(LeagueMembership)
        .where(LeagueMembership.league_id == league_id)
        .order_by(LeagueMembership.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def _summarize_league(league: League, member_count: int) -> LeagueSummary:
    return LeagueSummary(
        id=league.id,
        tier=league.tier,
        status=league.status,
        week_start=league.week_start,
        week_end=league.week_end,
        member_count=member_count,
    )


# =========================================
# STANDINGS
# =========================================
async def get_standings(db: AsyncSession, league_id: int) -> Standings:
    """
    Ranked members of a league with their zones.
    Pure read: calling it repeatedly without new scores yields identical output.
    """
    league = await db.get(League, league_id, populate_existing=True)
    if not league:
        raise LeagueNotFoundError(f"League {league_id} not found")

    members = await _league_members(db, league_id)
    ranked = rank_members(members, league.tier)

    return Standings(
        league=_summarize_league(league, len(members)),
        members=[
            StandingsMember(
                membership_id=r.membership_id,
                user_id=r.user_id,
                weekly_score=r.weekly_score,
                joined_at=r.joined_at,
                rank=r.rank,
                zone=r.zone,
            )
            for r in ranked
        ],
    )


# =========================================
# USER LEAGUE STATUS
# =========================================
async def get_user_league_status(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> UserLeagueStatus:
    """
    Current league, rank and zone for this week, plus lifetime stats and the
    countdown to the end of the window. Creates the tier ledger on first read.
    """
    week_start, week_end = current_week_window(now)

    ledger = await get_or_create_tier_ledger(db, user_id)
    membership = await find_week_membership(db, user_id, week_start, week_end)

    overall_stats = LifetimeLeagueStats(
        current_tier=ledger.current_tier,
        highest_tier=ledger.highest_tier,
        weeks_participated=ledger.weeks_participated,
        total_promotions=ledger.total_promotions,
        top_3_finishes=ledger.top_3_finishes,
        first_place_wins=ledger.first_place_wins,
    )
    time_remaining = split_duration(time_until_week_end(now))

    if not membership:
        await db.commit()
        return UserLeagueStatus(
            in_league=False,
            user_stats=UserLeagueStats(),
            overall_stats=overall_stats,
            time_remaining=time_remaining,
        )

    league = await db.get(League, membership.league_id, populate_existing=True)
    members = await _league_members(db, league.id)
    ranked = rank_members(members, league.tier)
    mine = next(r for r in ranked if r.user_id == user_id)
    await db.commit()

    return UserLeagueStatus(
        in_league=True,
        league=_summarize_league(league, len(members)),
        tier_info=TierInfo(**get_tier_info(league.tier)),
        user_stats=UserLeagueStats(weekly_score=mine.weekly_score, rank=mine.rank, zone=mine.zone),
        overall_stats=overall_stats,
        time_remaining=time_remaining,
    )


# =========================================
# LEAGUE HISTORY
# =========================================
async def get_league_history(db: AsyncSession, user_id: str, limit: int = 10) -> List[LeagueHistoryEntry]:
    """Finished weeks for a user, newest first. `limit` is capped at 50."""
    limit = max(1, min(limit, HISTORY_MAX_LIMIT))
    result = await db.execute(
        select(LeagueHistory)
        .where(LeagueHistory.user_id == user_id)
        .order_by(LeagueHistory.week_start.desc(), LeagueHistory.id.desc())
        .limit(limit)
    )
    return [
        LeagueHistoryEntry(
            league_id=h.league_id,
            week_start=h.week_start,
            week_end=h.week_end,
            tier=h.tier,
            final_rank=h.final_rank,
            weekly_score=h.weekly_score,
            zone=h.zone,
            promoted=h.promoted,
            demoted=h.demoted,
            tier_after=h.tier_after,
            badge_earned=h.badge_earned,
        )
        for h in result.scalars().all()
    ]
