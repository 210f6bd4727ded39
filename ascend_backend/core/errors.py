# ascend_backend/core/errors.py
# Domain errors for leagues and seasons. Routes translate them to HTTP responses.


class ProgressionError(Exception):
    """Base class for every league/season business error."""

    code = "progression_error"

    def __init__(self, message: str = None):
        super().__init__(message or self.code)
        self.message = message or self.code


# --- Lookups ---

class NotFoundError(ProgressionError):
    code = "not_found"


class LeagueNotFoundError(NotFoundError):
    code = "league_not_found"


class NoActiveSeasonError(NotFoundError):
    code = "no_active_season"


# --- Claim rule violations (terminal, never retried) ---

class ClaimError(ProgressionError):
    code = "claim_error"


class NotUnlockedError(ClaimError):
    code = "not_unlocked"


class PremiumRequiredError(ClaimError):
    code = "premium_required"


class AlreadyClaimedError(ClaimError):
    code = "already_claimed"


class NoRewardError(ClaimError):
    code = "no_reward"


# --- Input / scheduling ---

class InvalidAmountError(ProgressionError, ValueError):
    code = "invalid_amount"


class RolloverNotDueError(ProgressionError):
    code = "rollover_not_due"


def validate_amount(amount) -> int:
    """XP and score amounts must be non-negative integers."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmountError(f"Amount must be a non-negative integer, got {amount!r}")
    return amount


def http_status_for(error: ProgressionError) -> int:
    """HTTP status the routes answer with for a domain error."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (AlreadyClaimedError, RolloverNotDueError)):
        return 409
    if isinstance(error, ClaimError):
        return 400
    if isinstance(error, InvalidAmountError):
        return 422
    return 400
