# __init__.py
# Imports all seed functions for easy batch seeding.

from .seed_season import seed_season, generate_default_tier_rewards, load_tier_rewards_from_csv
from .seed_all import seed_all
