#!/usr/bin/env python3
"""
Seed a demo team: one season, a seven-player squad and a run of matches
with lineups, coach stats and feedback.

Everything goes through the services, so the growth snapshots and current
ratings are exactly what the API would have produced.

Usage:
    python scripts/seed_demo_data.py --matches 12 --seed 7
"""
import argparse
import os
import sys
import uuid
from datetime import date
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import logging

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_PLAYERS = (
    ("Marcus Reid", "ST"),
    ("Leo Okafor", "CM"),
    ("Sam Patel", "CM"),
    ("Daniel Cruz", "CB"),
    ("Ethan Walsh", "RW"),
    ("Noah Brennan", "RB"),
    ("Tom Ashby", "CM"),
)

# 4-3-3 slot for each squad member, in squad order
DEMO_SLOTS = ("ST", "CM1", "CM2", "CB1", "RW", "RB", "CM3")


def get_database_url():
    """Get database URL from environment or settings."""
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        return db_url

    from squadtrack.core.config import settings
    return settings.DATABASE_URL


def seed_squad(session, team_id):
    """Create the demo players on ``team_id``."""
    from squadtrack.models import Player

    players = []
    for name, position in DEMO_PLAYERS:
        player = Player(team_id=team_id, user_id=str(uuid.uuid4()), name=name, position=position)
        session.add(player)
        players.append(player)
    session.commit()
    logger.info(f"✓ Seeded {len(players)} players for team {team_id}")
    return players


def seed_season(session, team_id, players, match_count, seed, start, end):
    """Create a season and play ``match_count`` matches through the services."""
    from squadtrack.seeding.stats_generator import MatchStatsGenerator
    from squadtrack.services.ai_suggestions import TemplateSuggestionGenerator
    from squadtrack.services.lineup_service import LineupService
    from squadtrack.services.match_service import MatchService
    from squadtrack.services.season_service import SeasonService
    from squadtrack.services.stats_service import StatsService

    generator = MatchStatsGenerator(seed=seed)
    suggestions = TemplateSuggestionGenerator()

    season = SeasonService(session).create_season(team_id, f"Demo {start.year}", start, end)
    match_service = MatchService(session)
    lineup_service = LineupService(session)
    stats_service = StatsService(session)

    for match_date in generator.fixture_dates(start, end, match_count):
        team_score, opponent_score = generator.match_result()
        match = match_service.create_match(
            season.id, generator.opponent(), match_date,
            team_score=team_score, opponent_score=opponent_score,
        )

        lineup = lineup_service.select_formation(match.id, "4-3-3")
        for player, slot in zip(players, DEMO_SLOTS):
            lineup_service.assign_player(lineup.id, slot, player.id)

        for player, stats in zip(players, generator.squad_stats(team_score, opponent_score)):
            feedback = generator.feedback()
            stats["feedback"] = feedback
            stats["ai_suggestions"] = suggestions.generate(feedback, player.position, stats)
            stats_service.submit_match_stats(player.id, match.id, stats)

        logger.info(f"Match vs {match.opponent} on {match_date.isoformat()}: {team_score}-{opponent_score}")

    logger.info(f"✓ Seeded {match_count} matches in season {season.id}")
    return season


def main():
    """Run seeding operations."""
    parser = argparse.ArgumentParser(description="Seed a demo team with matches and player growth data")
    parser.add_argument("--team-id", default=None, help="Team id (random UUID by default)")
    parser.add_argument("--matches", type=int, default=10, help="Number of matches to play")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    parser.add_argument("--start", type=date.fromisoformat, default=date(2025, 2, 1), help="Season start (YYYY-MM-DD)")
    parser.add_argument("--end", type=date.fromisoformat, default=date(2025, 8, 1), help="Season end (YYYY-MM-DD)")
    args = parser.parse_args()

    logger.info("Starting demo data seeding...")

    db_url = get_database_url()
    logger.info(f"Connecting to database: {db_url[:30]}...")

    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from squadtrack.models import Base

    engine = create_engine(db_url)
    Base.metadata.create_all(bind=engine, checkfirst=True)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    session = SessionLocal()
    team_id = args.team_id or str(uuid.uuid4())

    try:
        players = seed_squad(session, team_id)
        seed_season(session, team_id, players, args.matches, args.seed, args.start, args.end)

        logger.info("\n" + "=" * 50)
        logger.info(f"Demo data seeded for team {team_id} ✓")
        logger.info("=" * 50)

    except Exception as e:
        logger.error(f"Seeding failed: {e}")
        session.rollback()
        sys.exit(1)
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    main()
