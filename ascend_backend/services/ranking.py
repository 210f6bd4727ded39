# ascend_backend/services/ranking.py
# Single source of truth for league ordering and zones.
# Used by the standings query and by the weekly rollover so they can never disagree.

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List

from ascend_backend.core.league_config import BOTTOM_TIER, LEAGUE_CONFIG, TOP_TIER
from ascend_backend.models.league_model import LeagueZone
from ascend_backend.models.tier_model import LeagueTier


@dataclass(frozen=True)
class RankedMember:
    membership_id: int
    user_id: str
    weekly_score: int
    joined_at: datetime
    rank: int
    zone: LeagueZone


def standings_sort_key(member):
    """
    Highest weekly score first.
    Ties: earlier joiner ranks higher, then lower membership id.
    """
    return (-member.weekly_score, member.joined_at, member.id)


def classify_zone(rank: int, member_count: int, tier: LeagueTier) -> LeagueZone:
    """
    - promotion: top PROMOTION_THRESHOLD ranks, unless already in the top tier
    - demotion:  bottom DEMOTION_THRESHOLD ranks, unless already in the bottom tier
    - safe:      everyone else
    Promotion wins when a small league makes the two ranges overlap.
    """
    if rank <= LEAGUE_CONFIG["PROMOTION_THRESHOLD"] and tier != TOP_TIER:
        return LeagueZone.PROMOTION
    if rank > member_count - LEAGUE_CONFIG["DEMOTION_THRESHOLD"] and tier != BOTTOM_TIER:
        return LeagueZone.DEMOTION
    return LeagueZone.SAFE


def rank_members(memberships: Iterable, tier: LeagueTier) -> List[RankedMember]:
    """
    Orders LeagueMembership rows (anything with id/user_id/weekly_score/joined_at)
    and assigns rank 1..N plus a zone. Pure: does not touch the database.
    """
    ordered = sorted(memberships, key=standings_sort_key)
    member_count = len(ordered)

    return [
        RankedMember(
            membership_id=m.id,
            user_id=m.user_id,
            weekly_score=m.weekly_score,
            joined_at=m.joined_at,
            rank=rank,
            zone=classify_zone(rank, member_count, tier),
        )
        for rank, m in enumerate(ordered, start=1)
    ]
