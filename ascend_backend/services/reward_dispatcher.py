# ascend_backend/services/reward_dispatcher.py
# Applies battle pass rewards to a user. Must tolerate at-least-once delivery.

import logging
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ascend_backend.models.season_model import RewardGrant, RewardType

logger = logging.getLogger(__name__)


def reward_code_for(reward: Dict[str, Any]) -> str:
    """Items/cosmetics/titles carry a code; XP and currency are keyed by type and amount."""
    if reward.get("code"):
        return reward["code"]
    return f"{reward['type']}:{reward.get('amount', 0)}"


class RewardDispatcher:
    """
    Interface for handing out a reward descriptor
    ({"type": "xp|item|cosmetic|currency|title", "code"?, "amount"?}).
    Implementations run inside the caller's transaction and must be idempotent
    per (user_id, reward code, source).
    """

    async def dispatch(self, db: AsyncSession, user_id: str, reward: Dict[str, Any], source: str) -> bool:
        raise NotImplementedError


class LedgerRewardDispatcher(RewardDispatcher):
    """
    Default dispatcher: records every grant in the reward_grant ledger, which
    inventory and profile XP consumers read from. A repeated (user, code, source)
    grant is absorbed and reported as not newly granted.
    """

    async def dispatch(self, db: AsyncSession, user_id: str, reward: Dict[str, Any], source: str) -> bool:
        reward_type = RewardType(reward["type"])
        reward_code = reward_code_for(reward)

        try:
            async with db.begin_nested():
                db.add(RewardGrant(
                    user_id=user_id,
                    reward_type=reward_type,
                    reward_code=reward_code,
                    amount=reward.get("amount"),
                    source=source,
                ))
        except IntegrityError:
            logger.info(f"Reward {reward_code} from {source} already granted to {user_id}")
            return False

        logger.info(f"🎁 Granted {reward_type.value} reward {reward_code} to {user_id} ({source})")
        return True
