# ascend_backend/core/league_config.py
"""
league_config.py
----------------
Defines league tiers, cohort rules, and battle pass defaults for Ascend.

- 7 tiers, lowest (Bronze) to highest (Legendary)
- 30 members per league, top 10 promoted, bottom 5 demoted
- Seasons default to 50 reward tiers, a milestone every 10 tiers
"""

from typing import Optional

from ascend_backend.models.tier_model import LeagueTier

LEAGUE_TIERS = [
    {"tier": LeagueTier.BRONZE, "name": "Bronze", "color": "#CD7F32", "icon": "🥉", "rank": 1},
    {"tier": LeagueTier.SILVER, "name": "Silver", "color": "#C0C0C0", "icon": "🥈", "rank": 2},
    {"tier": LeagueTier.GOLD, "name": "Gold", "color": "#FFD700", "icon": "🥇", "rank": 3},
    {"tier": LeagueTier.PLATINUM, "name": "Platinum", "color": "#E5E4E2", "icon": "💎", "rank": 4},
    {"tier": LeagueTier.DIAMOND, "name": "Diamond", "color": "#B9F2FF", "icon": "💠", "rank": 5},
    {"tier": LeagueTier.OBSIDIAN, "name": "Obsidian", "color": "#3D3D3D", "icon": "🖤", "rank": 6},
    {"tier": LeagueTier.LEGENDARY, "name": "Legendary", "color": "#FF6B6B", "icon": "👑", "rank": 7},
]

LEAGUE_CONFIG = {
    "MAX_MEMBERS_PER_LEAGUE": 30,  # Advisory: concurrent joins may overflow slightly
    "PROMOTION_THRESHOLD": 10,     # Top 10 get promoted
    "DEMOTION_THRESHOLD": 5,       # Bottom 5 get demoted
    "TOP_FINISH_THRESHOLD": 3,     # Podium finishes counted on the tier ledger
}

SEASON_DEFAULTS = {
    "TIER_COUNT": 50,
    "XP_PER_TIER": 1000,
    "LENGTH_DAYS": 56,       # 8 weekly windows
    "MILESTONE_EVERY": 10,   # Epic rewards
    "MINI_MILESTONE_EVERY": 5,
}

TIER_ORDER = [entry["tier"] for entry in LEAGUE_TIERS]
BOTTOM_TIER = TIER_ORDER[0]
TOP_TIER = TIER_ORDER[-1]


def get_tier_info(tier: LeagueTier) -> dict:
    """Display info for a tier (falls back to Bronze)."""
    for entry in LEAGUE_TIERS:
        if entry["tier"] == tier:
            return entry
    return LEAGUE_TIERS[0]


def tier_rank(tier: LeagueTier) -> int:
    """Ordinal rank of a tier, 1 (lowest) .. 7 (highest)."""
    return TIER_ORDER.index(LeagueTier(tier)) + 1


def get_next_tier(tier: LeagueTier) -> Optional[LeagueTier]:
    index = TIER_ORDER.index(LeagueTier(tier))
    if index < len(TIER_ORDER) - 1:
        return TIER_ORDER[index + 1]
    return None


def get_previous_tier(tier: LeagueTier) -> Optional[LeagueTier]:
    index = TIER_ORDER.index(LeagueTier(tier))
    if index > 0:
        return TIER_ORDER[index - 1]
    return None
