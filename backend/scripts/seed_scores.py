"""
Seed the database with fake accounts and memory game scores.

Players are picked with a Zipf distribution so a few regulars own most of the
games, like a real leaderboard.

Usage:
    python scripts/seed_scores.py [accounts] [scores]
"""
import sys
import os
import time
import random
from datetime import datetime, timedelta, timezone

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from faker import Faker
from sqlalchemy import func, insert
import numpy as np

from memorymatch.catalog import CATEGORY_IDS, DIFFICULTY_IDS
from memorymatch.config import get_settings
from memorymatch.database import Base, SessionLocal, engine
from memorymatch.models import Account, Score
from memorymatch.services.accounts import hash_password
from memorymatch.services.scores import compute_score

fake = Faker()
settings = get_settings()

SEED_PASSWORD = "memorymatch"

# Typical (time, moves) ranges per difficulty
DIFFICULTY_PROFILES = {
    "easy": ((20, 120), (8, 40)),
    "medium": ((60, 300), (20, 90)),
    "hard": ((150, 900), (50, 250)),
}


def create_tables():
    print("Creating tables...")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")


def generate_accounts(session, total_accounts=200, batch_size=100):
    """Insert accounts sharing one password hash and return their (id, username) pairs."""
    print(f"\nGenerating {total_accounts:,} accounts...")
    start_time = time.time()
    password_hash = hash_password(SEED_PASSWORD)

    for batch_start in range(0, total_accounts, batch_size):
        batch_end = min(batch_start + batch_size, total_accounts)
        rows = []
        for i in range(batch_start, batch_end):
            rows.append({
                "username": f"{fake.user_name()[:20]}_{i}",
                "email": f"player_{i}@{fake.domain_name()}",
                "password_hash": password_hash,
                "join_date": fake.date_time_between(start_date="-1y", tzinfo=timezone.utc),
            })
        session.execute(insert(Account), rows)
        session.commit()

    total_time = time.time() - start_time
    print(f"✓ Created {total_accounts:,} accounts in {total_time:.2f} seconds")
    return session.query(Account.id, Account.username).order_by(Account.id).all()


def generate_scores(session, accounts, total_scores=5_000, batch_size=1_000):
    """Insert scores spread over the last 30 days."""
    print(f"\nGenerating {total_scores:,} scores...")
    start_time = time.time()
    zipf_param = 1.5
    now = datetime.now(timezone.utc)

    for batch_start in range(0, total_scores, batch_size):
        batch_end = min(batch_start + batch_size, total_scores)
        rows = []
        for _ in range(batch_end - batch_start):
            zipf_index = int(np.random.zipf(zipf_param)) - 1
            account_id, username = accounts[min(zipf_index, len(accounts) - 1)]

            # Roughly one game in five is played anonymously
            anonymous = random.random() < 0.2
            difficulty = random.choice(DIFFICULTY_IDS)
            (min_time, max_time), (min_moves, max_moves) = DIFFICULTY_PROFILES[difficulty]
            game_time = random.randint(min_time, max_time)
            moves = random.randint(min_moves, max_moves)

            rows.append({
                "player_name": fake.first_name() if anonymous else username,
                "user_id": None if anonymous else account_id,
                "category": random.choice(CATEGORY_IDS),
                "difficulty": difficulty,
                "time": game_time,
                "moves": moves,
                "score": compute_score(game_time, moves),
                "created_at": now - timedelta(
                    days=random.randint(0, 30),
                    hours=random.randint(0, 23),
                    minutes=random.randint(0, 59),
                ),
            })
        session.execute(insert(Score), rows)
        session.commit()

        progress = (batch_end / total_scores) * 100
        print(f"Progress: {progress:.1f}% ({batch_end:,}/{total_scores:,})")

    total_time = time.time() - start_time
    print(f"✓ Created {total_scores:,} scores in {total_time:.2f} seconds")


def print_statistics(session):
    print("\n" + "="*60)
    print("DATABASE STATISTICS")
    print("="*60)
    print(f"Total Accounts: {session.query(func.count(Account.id)).scalar():,}")
    print(f"Total Scores: {session.query(func.count(Score.id)).scalar():,}")

    print("\nFastest 5 games:")
    fastest = session.query(Score).order_by(Score.time.asc(), Score.moves.asc()).limit(5).all()
    for idx, score in enumerate(fastest, 1):
        print(f"  {idx}. {score.player_name}: {score.time}s, {score.moves} moves "
              f"({score.category}/{score.difficulty}, score {score.score})")
    print("="*60)


def main():
    total_accounts = int(sys.argv[1]) if len(sys.argv) > 1 else 200
    total_scores = int(sys.argv[2]) if len(sys.argv) > 2 else 5_000

    print("="*60)
    print("MEMORY MATCH SEED SCRIPT")
    print("="*60)
    print(f"Target: {total_accounts:,} accounts, {total_scores:,} scores")
    print(f"Database: {engine.url.render_as_string(hide_password=True)}")
    print(f"Seeded accounts share the password: {SEED_PASSWORD}")
    print("="*60)

    session = SessionLocal()

    try:
        create_tables()
        accounts = generate_accounts(session, total_accounts=total_accounts)
        generate_scores(session, accounts, total_scores=total_scores)
        print_statistics(session)
        print("✓ Seeding completed successfully!")
    except Exception as e:
        print(f"\n✗ Error during seeding: {e}")
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
