from datetime import timedelta

from ascend_backend.core.week_window import utc_now
from ascend_backend.models import League, LeagueHistory, LeagueTier, LeagueZone
from ascend_backend.routes import league_routes
from conftest import make_season


async def live_season(db, **kwargs):
    now = utc_now()
    return await make_season(db, starts_at=now - timedelta(days=1), ends_at=now + timedelta(days=20), **kwargs)


async def test_list_tiers(client):
    resp = await client.get("/leagues/tiers")

    assert resp.status_code == 200
    data = resp.json()
    assert [t["tier"] for t in data["tiers"]] == [
        "BRONZE", "SILVER", "GOLD", "PLATINUM", "DIAMOND", "OBSIDIAN", "LEGENDARY",
    ]
    assert data["rules"]["MAX_MEMBERS_PER_LEAGUE"] == 30


async def test_join_and_status(client):
    resp = await client.post("/leagues/alice/join")
    assert resp.status_code == 200
    data = resp.json()
    assert data["membership"]["is_newly_joined"] is True
    assert data["membership"]["tier"] == "BRONZE"
    assert data["status"]["in_league"] is True
    assert data["status"]["user_stats"]["rank"] == 1
    assert data["status"]["tier_info"]["name"] == "Bronze"
    assert [m["user_id"] for m in data["standings"]["members"]] == ["alice"]

    again = await client.post("/leagues/alice/join")
    assert again.json()["membership"]["is_newly_joined"] is False
    assert again.json()["membership"]["league_id"] == data["membership"]["league_id"]

    status = await client.get("/leagues/alice/status")
    assert status.status_code == 200
    assert status.json()["standings"]["league"]["member_count"] == 1
    assert set(status.json()["status"]["time_remaining"]) == {"hours", "minutes", "seconds"}


async def test_status_outside_a_league(client):
    resp = await client.get("/leagues/bob/status")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"]["in_league"] is False
    assert data["status"]["overall_stats"]["current_tier"] == "BRONZE"
    assert data["standings"] is None


async def test_unknown_league_standings(client):
    resp = await client.get("/leagues/standings/999")

    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "league_not_found"


async def test_xp_moves_weekly_score(client):
    resp = await client.post("/xp/alice", json={"amount": 30})

    assert resp.status_code == 200
    assert resp.json()["weekly_score_applied"] is True
    assert resp.json()["season_xp_applied"] is False

    status = await client.get("/leagues/alice/status")
    assert status.json()["status"]["user_stats"]["weekly_score"] == 30


async def test_negative_xp_is_rejected(client):
    resp = await client.post("/xp/alice", json={"amount": -1})
    assert resp.status_code == 422


async def test_no_season(client):
    resp = await client.get("/seasons/alice")

    assert resp.status_code == 200
    assert resp.json() == {"active": False}

    claim = await client.post("/seasons/alice/claim", json={"tier_number": 1})
    assert claim.status_code == 404
    assert claim.json()["detail"]["code"] == "no_active_season"


async def test_season_claim_flow(client, db):
    await live_season(db)

    await client.post("/xp/carol", json={"amount": 250})
    resp = await client.get("/seasons/carol")
    assert resp.status_code == 200
    data = resp.json()
    assert data["active"] is True
    assert data["progress"]["current_tier"] == 2
    assert len(data["tiers"]) == 5

    claim = await client.post("/seasons/carol/claim", json={"tier_number": 1, "track": "free"})
    assert claim.status_code == 200
    assert claim.json()["reward"] == {"type": "xp", "amount": 10}

    duplicate = await client.post("/seasons/carol/claim", json={"tier_number": 1, "track": "free"})
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["code"] == "already_claimed"

    locked = await client.post("/seasons/carol/claim", json={"tier_number": 3})
    assert locked.status_code == 400
    assert locked.json()["detail"]["code"] == "not_unlocked"

    premium = await client.post("/seasons/carol/claim", json={"tier_number": 2, "track": "premium"})
    assert premium.status_code == 400
    assert premium.json()["detail"]["code"] == "premium_required"

    bought = await client.post("/seasons/carol/premium")
    assert bought.status_code == 200
    assert bought.json()["progress"]["has_premium"] is True

    premium = await client.post("/seasons/carol/claim", json={"tier_number": 2, "track": "premium"})
    assert premium.status_code == 200

    no_reward = await client.post("/seasons/carol/claim", json={"tier_number": 1, "track": "premium"})
    assert no_reward.status_code == 400
    assert no_reward.json()["detail"]["code"] == "no_reward"

    final = (await client.get("/seasons/carol")).json()
    assert final["progress"]["claimed_free"] == [1]
    assert final["progress"]["claimed_premium"] == [2]


async def test_rollover_endpoints(client, monkeypatch):
    monkeypatch.setattr(league_routes, "TEST_MODE", True)
    joined = (await client.post("/leagues/alice/join")).json()
    league_id = joined["membership"]["league_id"]

    batch = await client.post("/leagues/rollover")
    assert batch.status_code == 200
    assert batch.json()["leagues_found"] == 0

    early = await client.post(f"/leagues/{league_id}/rollover")
    assert early.status_code == 409
    assert early.json()["detail"]["code"] == "rollover_not_due"

    forced = await client.post(f"/leagues/{league_id}/rollover", params={"force": True})
    assert forced.status_code == 200
    assert forced.json()["members_processed"] == 1

    history = await client.get("/leagues/alice/history")
    assert history.status_code == 200
    assert len(history.json()) == 1
    assert history.json()[0]["final_rank"] == 1

    missing = await client.post("/leagues/999/rollover")
    assert missing.status_code == 404


async def test_forced_rollover_needs_test_mode(client, monkeypatch):
    monkeypatch.setattr(league_routes, "TEST_MODE", False)
    joined = (await client.post("/leagues/alice/join")).json()
    league_id = joined["membership"]["league_id"]

    forced = await client.post(f"/leagues/{league_id}/rollover", params={"force": True})
    assert forced.status_code == 403

    status = await client.get("/leagues/alice/status")
    assert status.json()["status"]["in_league"] is True


async def test_history_limit_is_capped(client, db):
    week_start = utc_now() - timedelta(weeks=60)
    for week in range(55):
        start = week_start + timedelta(weeks=week)
        end = start + timedelta(days=7) - timedelta(milliseconds=1)
        league = League(tier=LeagueTier.BRONZE, week_start=start, week_end=end, created_at=start)
        db.add(league)
        await db.flush()
        db.add(LeagueHistory(
            league_id=league.id,
            user_id="alice",
            week_start=start,
            week_end=end,
            tier=LeagueTier.BRONZE,
            final_rank=1,
            weekly_score=week,
            zone=LeagueZone.PROMOTION,
            promoted=True,
            tier_after=LeagueTier.SILVER,
        ))
    await db.commit()

    resp = await client.get("/leagues/alice/history", params={"limit": 500})

    assert resp.status_code == 200
    assert len(resp.json()) == 50
    assert resp.json()[0]["weekly_score"] == 54
