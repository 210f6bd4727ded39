"""Shared test fixtures for the progression engine.

Provides:
- A temp-file SQLite engine per test (file-backed so concurrent sessions really contend)
- Session factory + a single session for service-level tests
- Async FastAPI test client with the DB dependencies overridden
- Season and league factories
"""
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from ascend_backend.core.database import build_async_engine, build_session_maker, init_db
from ascend_backend.models import (
    League,
    LeagueMembership,
    Season,
    SeasonStatus,
    SeasonTierReward,
    TierLedger,
)

# Wednesday noon; its week runs Mon 2026-03-09 00:00 -> Sun 2026-03-15 23:59:59.999 (UTC)
NOW = datetime(2026, 3, 11, 12, 0, 0)
WEEK_START = datetime(2026, 3, 9)
WEEK_END = datetime(2026, 3, 15, 23, 59, 59, 999000)
AFTER_WEEK = datetime(2026, 3, 16, 0, 5, 0)


@pytest.fixture
async def engine(tmp_path):
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_maker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """HTTP client against the app, wired to the per-test database."""
    from ascend_backend.core.database import get_db, get_session_factory
    from ascend_backend.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# --- Test data factories ---

async def make_season(session, tier_count=5, xp_per_tier=100, starts_at=None, ends_at=None, rewards=None):
    """
    Active season covering NOW. Default rewards: free XP on every tier,
    premium currency on even tiers only, milestone on the last tier.
    """
    season = Season(
        name="Test Season",
        status=SeasonStatus.ACTIVE,
        tier_count=tier_count,
        xp_per_tier=xp_per_tier,
        starts_at=starts_at or NOW - timedelta(days=3),
        ends_at=ends_at or NOW + timedelta(days=10, hours=5),
    )
    session.add(season)
    await session.flush()

    if rewards is None:
        rewards = [
            {
                "tier_number": n,
                "free_reward": {"type": "xp", "amount": 10 * n},
                "premium_reward": {"type": "currency", "amount": 50} if n % 2 == 0 else None,
                "is_milestone": n == tier_count,
            }
            for n in range(1, tier_count + 1)
        ]
    for reward in rewards:
        session.add(SeasonTierReward(season_id=season.id, **reward))

    await session.commit()
    return season


async def make_league(
    session, tier, scores, week_start=WEEK_START, week_end=WEEK_END, ledger_tier=None, prefix="u"
):
    """
    A league with one member per score, user ids {prefix}1..{prefix}N, joined one second apart
    in list order. Creates a tier ledger per member at `ledger_tier` (defaults to the league tier).
    """
    league = League(tier=tier, week_start=week_start, week_end=week_end, created_at=week_start)
    session.add(league)
    await session.flush()

    for i, score in enumerate(scores, start=1):
        session.add(LeagueMembership(
            league_id=league.id,
            user_id=f"{prefix}{i}",
            week_start=week_start,
            week_end=week_end,
            weekly_score=score,
            joined_at=week_start + timedelta(seconds=i),
        ))
        session.add(TierLedger(
            user_id=f"{prefix}{i}",
            current_tier=ledger_tier or tier,
            highest_tier=ledger_tier or tier,
        ))

    await session.commit()
    return league

