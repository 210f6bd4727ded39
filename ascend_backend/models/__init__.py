# ascend_backend/models/__init__.py
# Centralized imports for all database models and schemas

# Tiers
from .tier_model import LeagueTier, TierLedger

# Leagues
from .league_model import League, LeagueMembership, LeagueHistory, LeagueStatus, LeagueZone
from .league_schemas import (
    TierInfo, MembershipResult, StandingsMember, LeagueSummary, Standings,
    UserLeagueStats, LifetimeLeagueStats, UserLeagueStatus, LeagueHistoryEntry,
    LeagueRolloverResult, RolloverFailure, RolloverSummary
)

# Seasons
from .season_model import (
    Season, SeasonTierReward, SeasonProgress, SeasonClaim, RewardGrant,
    SeasonStatus, ClaimTrack, RewardType
)
from .season_schemas import (
    SeasonInfo, SeasonProgressSummary, SeasonTierStatus, UserSeasonProgress,
    ClaimRequest, ClaimResult
)

# XP accrual
from .xp_schemas import XPAccrualRequest, AccrualResult
