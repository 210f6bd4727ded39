# ascend_backend/services/xp_accrual.py
# Fan-in for every scorable action: league membership, weekly score, season XP.

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.core.errors import InvalidAmountError, ProgressionError, validate_amount
from ascend_backend.models.xp_schemas import AccrualResult
from ascend_backend.services.league_service import add_weekly_score, ensure_membership
from ascend_backend.services.season_service import add_season_xp

logger = logging.getLogger(__name__)


async def record_scorable_action(
    db: AsyncSession,
    user_id: str,
    amount: int,
    now: Optional[datetime] = None,
    join_league: bool = True,
) -> AccrualResult:
    """
    Applies one action's XP to the weekly league and the active season.
    Each step commits on its own; a failing step is logged and reported in
    `errors` and the remaining steps still run. Never raises to the caller.
    """
    result = AccrualResult(user_id=user_id, amount=amount)

    try:
        validate_amount(amount)
    except InvalidAmountError as e:
        logger.warning(f"Ignored XP for {user_id}: {e.message}")
        result.errors.append(e.code)
        return result

    if join_league:
        try:
            result.membership = await ensure_membership(db, user_id, now=now)
        except (ProgressionError, SQLAlchemyError) as e:
            await db.rollback()
            logger.exception(f"League join failed for {user_id}")
            result.errors.append(f"membership: {e}")

    try:
        result.weekly_score_applied = await add_weekly_score(db, user_id, amount, now=now)
    except (ProgressionError, SQLAlchemyError) as e:
        await db.rollback()
        logger.exception(f"Weekly score update failed for {user_id}")
        result.errors.append(f"weekly_score: {e}")

    try:
        progress = await add_season_xp(db, user_id, amount, now=now)
        if progress is not None:
            result.season_xp_applied = True
            result.season_xp = progress.season_xp
    except (ProgressionError, SQLAlchemyError) as e:
        await db.rollback()
        logger.exception(f"Season XP update failed for {user_id}")
        result.errors.append(f"season_xp: {e}")

    logger.info(
        f"⭐ +{amount} XP for {user_id} "
        f"(league: {result.weekly_score_applied}, season: {result.season_xp_applied})"
    )
    return result
