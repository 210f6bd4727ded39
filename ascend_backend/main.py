import asyncio
import logging

from fastapi import FastAPI

from ascend_backend.core.config import ENABLE_ROLLOVER_LOOP, TEST_MODE
from ascend_backend.core.database import async_session_maker, init_db
from ascend_backend.core.logging_config import configure_logging
from ascend_backend.seed.seed_all import seed_all

# --- Routers ---
from ascend_backend.routes.league_routes import router as league_router
from ascend_backend.routes.season_routes import router as season_router
from ascend_backend.routes.xp_routes import router as xp_router
from ascend_backend.services.rollover_service import weekly_rollover_loop
from ascend_backend.services.season_service import get_active_season

logger = logging.getLogger(__name__)

app = FastAPI(title="Ascend progression")


@app.on_event("startup")
async def on_startup():
    configure_logging()

    # 1️⃣ Init DB tables async
    await init_db()

    # 2️⃣ Auto-seed a season in sync mode when none is running
    async with async_session_maker() as db:
        season = await get_active_season(db)
    if TEST_MODE or season is None:
        seed_all()
    else:
        logger.info(f"✅ Season '{season.name}' active. Skipping auto-seed.")


@app.on_event("startup")
async def start_background_tasks():
    """
    Weekly rollover loop. Off by default: production triggers POST /leagues/rollover from cron.
    """
    if not ENABLE_ROLLOVER_LOOP:
        return
    asyncio.create_task(weekly_rollover_loop(async_session_maker))
    logger.info("🔄 Background task started: weekly league rollover")


# Routers
app.include_router(league_router, prefix="/leagues", tags=["Leagues"])
app.include_router(season_router, prefix="/seasons", tags=["Seasons"])
app.include_router(xp_router, prefix="/xp", tags=["XP"])
