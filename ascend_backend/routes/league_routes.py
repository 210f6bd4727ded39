from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.core.config import TEST_MODE
from ascend_backend.core.database import get_db, get_session_factory
from ascend_backend.core.errors import ProgressionError, http_status_for
from ascend_backend.core.league_config import LEAGUE_CONFIG, LEAGUE_TIERS
from ascend_backend.services.league_service import ensure_membership
from ascend_backend.services.rollover_service import rollover_league, run_weekly_rollover
from ascend_backend.services.standings_service import (
    get_league_history,
    get_standings,
    get_user_league_status,
)

router = APIRouter()


def _http_error(e: ProgressionError) -> HTTPException:
    return HTTPException(status_code=http_status_for(e), detail={"code": e.code, "message": e.message})


# =========================================
# TIERS
# =========================================
@router.get("/tiers")
async def list_tiers():
    """All league tiers, lowest first, with the cohort rules."""
    return {
        "tiers": [{**t, "tier": t["tier"].value} for t in LEAGUE_TIERS],
        "rules": LEAGUE_CONFIG,
    }


# =========================================
# STANDINGS
# =========================================
@router.get("/standings/{league_id}")
async def league_standings(league_id: int, db: AsyncSession = Depends(get_db)):
    """Ranked members of a league with their promotion/demotion zones."""
    try:
        return await get_standings(db, league_id)
    except ProgressionError as e:
        raise _http_error(e)


# =========================================
# WEEKLY ROLLOVER
# =========================================
@router.post("/rollover")
async def trigger_weekly_rollover(session_factory=Depends(get_session_factory)):
    """
    Closes every league whose week has ended and applies promotions/demotions.
    Meant for cron. Safe to call repeatedly.
    """
    return await run_weekly_rollover(session_factory)


@router.post("/{league_id}/rollover")
async def trigger_league_rollover(
    league_id: int,
    force: bool = False,
    session_factory=Depends(get_session_factory),
):
    """Rolls over one league. `force` (test mode only) skips the week-ended check."""
    if force and not TEST_MODE:
        raise HTTPException(status_code=403, detail="Forced rollover is only available in test mode")
    try:
        return await rollover_league(session_factory, league_id, force=force)
    except ProgressionError as e:
        raise _http_error(e)


# =========================================
# USER LEAGUE STATUS
# =========================================
@router.post("/{user_id}/join")
async def join_league(user_id: str, db: AsyncSession = Depends(get_db)):
    """
    Puts the user into this week's league (no-op if already in one) and
    returns the membership, the user's status and the league standings.
    """
    membership = await ensure_membership(db, user_id)
    status = await get_user_league_status(db, user_id)
    standings = await get_standings(db, membership.league_id)
    return {"membership": membership, "status": status, "standings": standings}


@router.get("/{user_id}/status")
async def league_status(user_id: str, db: AsyncSession = Depends(get_db)):
    """Current league, rank, zone and lifetime stats. Includes standings when in a league."""
    status = await get_user_league_status(db, user_id)
    standings = await get_standings(db, status.league.id) if status.in_league else None
    return {"status": status, "standings": standings}


@router.get("/{user_id}/history")
async def league_history(
    user_id: str,
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
):
    return await get_league_history(db, user_id, limit=limit)
