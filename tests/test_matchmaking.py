import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from ascend_backend.core.errors import InvalidAmountError
from ascend_backend.models import League, LeagueMembership, LeagueStatus, LeagueTier, LeagueZone, TierLedger
from ascend_backend.services import league_service
from ascend_backend.services.league_service import add_weekly_score, ensure_membership, get_tier_ledger
from ascend_backend.services.standings_service import get_standings
from conftest import NOW, WEEK_END, WEEK_START, make_league


async def membership_rows(session_factory, user_id=None):
    async with session_factory() as s:
        query = select(LeagueMembership)
        if user_id:
            query = query.where(LeagueMembership.user_id == user_id)
        return list((await s.execute(query)).scalars().all())


async def league_count(session_factory):
    async with session_factory() as s:
        return (await s.execute(select(func.count(League.id)))).scalar_one()


async def test_fresh_user_creates_bronze_league_and_leads_it(db, session_factory):
    result = await ensure_membership(db, "alice", now=NOW)

    assert result.is_newly_joined is True
    assert result.tier == LeagueTier.BRONZE

    standings = await get_standings(db, result.league_id)
    await db.commit()
    assert standings.league.member_count == 1
    assert standings.league.week_start == WEEK_START
    assert standings.league.week_end == WEEK_END
    assert standings.members[0].user_id == "alice"
    assert standings.members[0].rank == 1
    assert standings.members[0].zone == LeagueZone.PROMOTION

    ledger = await get_tier_ledger(db, "alice")
    await db.commit()
    assert ledger.current_tier == LeagueTier.BRONZE
    assert ledger.weeks_participated == 0


async def test_joining_twice_returns_the_same_membership(db, session_factory):
    first = await ensure_membership(db, "alice", now=NOW)
    second = await ensure_membership(db, "alice", now=NOW + timedelta(days=2))

    assert second.league_id == first.league_id
    assert second.is_newly_joined is False
    assert len(await membership_rows(session_factory, "alice")) == 1


async def test_new_week_gets_a_new_membership(db, session_factory):
    first = await ensure_membership(db, "alice", now=NOW)
    next_week = await ensure_membership(db, "alice", now=NOW + timedelta(days=7))

    assert next_week.is_newly_joined is True
    assert next_week.league_id != first.league_id
    assert len(await membership_rows(session_factory, "alice")) == 2


async def test_users_share_the_open_league_of_their_tier(db, session_factory):
    a = await ensure_membership(db, "alice", now=NOW)
    b = await ensure_membership(db, "bob", now=NOW + timedelta(seconds=1))

    assert a.league_id == b.league_id
    assert await league_count(session_factory) == 1


async def test_join_uses_the_tier_from_the_ledger(db, session_factory):
    db.add(TierLedger(user_id="sam", current_tier=LeagueTier.SILVER, highest_tier=LeagueTier.SILVER))
    await db.commit()

    bronze = await ensure_membership(db, "alice", now=NOW)
    silver = await ensure_membership(db, "sam", now=NOW)

    assert silver.tier == LeagueTier.SILVER
    assert silver.league_id != bronze.league_id


async def test_full_league_spills_into_a_new_one(db, session_factory):
    full = await make_league(db, LeagueTier.BRONZE, [0] * 30)

    result = await ensure_membership(db, "late", now=NOW)

    assert result.is_newly_joined is True
    assert result.league_id != full.id
    assert await league_count(session_factory) == 2


async def test_oldest_league_with_room_is_filled_first(db, session_factory):
    older = await make_league(db, LeagueTier.BRONZE, [0] * 5, prefix="a")
    await make_league(db, LeagueTier.BRONZE, [0] * 5, prefix="b")

    result = await ensure_membership(db, "late", now=NOW)
    assert result.league_id == older.id


async def test_closed_leagues_are_never_joined(db, session_factory):
    closed = await make_league(db, LeagueTier.BRONZE, [10])
    closed.status = LeagueStatus.CLOSED
    db.add(closed)
    await db.commit()

    result = await ensure_membership(db, "late", now=NOW)
    assert result.league_id != closed.id


async def test_concurrent_joins_of_distinct_users_are_all_placed(session_factory):
    async def join(i):
        async with session_factory() as s:
            return await ensure_membership(s, f"user{i}", now=NOW + timedelta(milliseconds=i))

    results = await asyncio.gather(*(join(i) for i in range(31)))

    assert all(r.is_newly_joined for r in results)
    rows = await membership_rows(session_factory)
    assert len(rows) == 31
    assert len({r.user_id for r in rows}) == 31

    per_league = {}
    for row in rows:
        per_league[row.league_id] = per_league.get(row.league_id, 0) + 1
    # Either one soft-overflowed league or a second league for the spill-over
    assert sorted(per_league.values()) in ([31], [1, 30])


async def test_concurrent_duplicate_joins_create_one_membership(session_factory):
    async def join():
        async with session_factory() as s:
            return await ensure_membership(s, "bob", now=NOW)

    results = await asyncio.gather(*(join() for _ in range(5)))

    assert len({r.league_id for r in results}) == 1
    assert sum(r.is_newly_joined for r in results) == 1
    assert len(await membership_rows(session_factory, "bob")) == 1


async def test_lost_join_race_returns_the_winning_membership(db, session_factory, monkeypatch):
    winner = await ensure_membership(db, "bob", now=NOW)

    real_lookup = league_service.find_week_membership
    calls = {"count": 0}

    async def stale_first_lookup(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return await real_lookup(*args, **kwargs)

    monkeypatch.setattr(league_service, "find_week_membership", stale_first_lookup)

    async with session_factory() as s:
        result = await ensure_membership(s, "bob", now=NOW)

    assert result.league_id == winner.league_id
    assert result.is_newly_joined is False
    assert len(await membership_rows(session_factory, "bob")) == 1
    assert await league_count(session_factory) == 1


async def test_lost_race_with_new_league_leaves_no_orphan_league(db, session_factory, monkeypatch):
    # bob is in a full league, so the stale path would have to create a new one
    full = await make_league(db, LeagueTier.BRONZE, [0] * 29)
    winner = await ensure_membership(db, "bob", now=NOW)
    assert winner.league_id == full.id

    real_lookup = league_service.find_week_membership
    calls = {"count": 0}

    async def stale_first_lookup(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return await real_lookup(*args, **kwargs)

    monkeypatch.setattr(league_service, "find_week_membership", stale_first_lookup)

    async with session_factory() as s:
        result = await ensure_membership(s, "bob", now=NOW)

    assert result.league_id == full.id
    assert result.is_newly_joined is False
    assert await league_count(session_factory) == 1


async def test_score_accrues_atomically_under_concurrency(db, session_factory):
    await ensure_membership(db, "alice", now=NOW)

    async def score():
        async with session_factory() as s:
            return await add_weekly_score(s, "alice", 5, now=NOW)

    results = await asyncio.gather(*(score() for _ in range(20)))

    assert all(results)
    rows = await membership_rows(session_factory, "alice")
    assert rows[0].weekly_score == 100


async def test_score_without_membership_is_a_noop(db, session_factory):
    assert await add_weekly_score(db, "ghost", 50, now=NOW) is False
    assert await membership_rows(session_factory, "ghost") == []


async def test_score_after_league_closed_is_a_noop(db, session_factory):
    league = await make_league(db, LeagueTier.SILVER, [10])
    league.status = LeagueStatus.CLOSED
    db.add(league)
    await db.commit()

    assert await add_weekly_score(db, "u1", 50, now=NOW) is False
    rows = await membership_rows(session_factory, "u1")
    assert rows[0].weekly_score == 10


async def test_zero_amount_is_accepted(db):
    await ensure_membership(db, "alice", now=NOW)
    assert await add_weekly_score(db, "alice", 0, now=NOW) is True


@pytest.mark.parametrize("amount", [-1, 2.5, "10", True, None])
async def test_invalid_amounts_are_rejected(db, amount):
    with pytest.raises(InvalidAmountError):
        await add_weekly_score(db, "alice", amount, now=NOW)
