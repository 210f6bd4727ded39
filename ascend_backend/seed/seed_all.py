# seed_all.py
# Orchestrates the seed scripts. Leagues and tier ledgers are created lazily, so only seasons need seeding.

import logging

from ascend_backend.core.logging_config import configure_logging
from ascend_backend.seed.seed_season import seed_season

logger = logging.getLogger(__name__)


def seed_all():
    logger.info("🌱 Starting database seeding...")

    logger.info("➡️  Step 1: Seeding seasons...")
    seed_season()

    logger.info("✅ Database seeding complete.")


if __name__ == "__main__":
    import asyncio

    from ascend_backend.core.database import init_db

    configure_logging()
    asyncio.run(init_db())
    seed_all()
