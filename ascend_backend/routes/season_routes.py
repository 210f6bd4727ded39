from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.core.database import get_db
from ascend_backend.core.errors import ProgressionError, http_status_for
from ascend_backend.models.season_schemas import ClaimRequest
from ascend_backend.services.season_service import (
    claim_tier_reward,
    get_user_season_progress,
    purchase_premium_pass,
)

router = APIRouter()


# =========================================
# GET SEASON PROGRESS
# =========================================
@router.get("/{user_id}")
async def season_progress(user_id: str, db: AsyncSession = Depends(get_db)):
    """
    The active season, the user's tier and claims, and the reward table.
    Returns {"active": false} between seasons.
    """
    progress = await get_user_season_progress(db, user_id)
    if progress is None:
        return {"active": False}
    return {"active": True, **progress.model_dump()}


# =========================================
# CLAIM A TIER REWARD
# =========================================
@router.post("/{user_id}/claim")
async def claim_reward(user_id: str, request: ClaimRequest, db: AsyncSession = Depends(get_db)):
    try:
        return await claim_tier_reward(db, user_id, request.tier_number, request.track)
    except ProgressionError as e:
        raise HTTPException(status_code=http_status_for(e), detail={"code": e.code, "message": e.message})


# =========================================
# PREMIUM PASS
# =========================================
@router.post("/{user_id}/premium")
async def buy_premium(user_id: str, db: AsyncSession = Depends(get_db)):
    """Unlocks the premium track. Payment is handled upstream."""
    try:
        await purchase_premium_pass(db, user_id)
    except ProgressionError as e:
        raise HTTPException(status_code=http_status_for(e), detail={"code": e.code, "message": e.message})

    progress = await get_user_season_progress(db, user_id)
    return {"active": True, **progress.model_dump()}
