from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.core.database import get_db
from ascend_backend.models.xp_schemas import AccrualResult, XPAccrualRequest
from ascend_backend.services.xp_accrual import record_scorable_action

router = APIRouter()


@router.post("/{user_id}", response_model=AccrualResult)
async def record_xp(user_id: str, request: XPAccrualRequest, db: AsyncSession = Depends(get_db)):
    """
    Called by activity features (workouts logged, places visited, habits kept) after a scorable action.
    Joins this week's league if needed and credits league score and season XP.
    """
    return await record_scorable_action(db, user_id, request.amount, join_league=request.join_league)
