"""
Shared fixtures: in-memory SQLite database, API client, accounts and an
in-memory score repository with a controllable clock.
"""
import os

# Configure the app before anything imports memorymatch.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["LOG_FILE"] = ""
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["ALLOW_ANONYMOUS_SCORES"] = "false"
os.environ["ENVIRONMENT"] = "test"

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from memorymatch import models  # noqa: F401
from memorymatch.config import get_settings
from memorymatch.database import Base, get_db
from memorymatch.main import app
from memorymatch.models import Score
from memorymatch.repository import LEADERBOARD_SORT, ScoreRepository, ScoreStats
from memorymatch.services.scores import ScoreService

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create and tear down test database for each test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def test_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def register(client):
    """Register an account and return its auth payload."""
    def _register(username="player1", email=None, password="secret123"):
        response = client.post("/api/auth/register", json={
            "username": username,
            "email": email or f"{username}@test.com",
            "password": password,
        })
        assert response.status_code == 201, response.json()
        return response.json()["data"]
    return _register


@pytest.fixture
def auth_headers(register):
    data = register()
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
def submit(client, auth_headers):
    """Submit a score as the default account."""
    def _submit(player_name="Ann", category="heroes", difficulty="easy", time=50, moves=20, headers=None):
        return client.post(
            "/api/scores",
            json={
                "playerName": player_name,
                "category": category,
                "difficulty": difficulty,
                "time": time,
                "moves": moves,
            },
            headers=auth_headers if headers is None else headers,
        )
    return _submit


class Clock:
    """Clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class InMemoryScoreRepository(ScoreRepository):
    """Score repository keeping transient Score objects in a list."""

    def __init__(self):
        self.records = []
        self._ids = count(1)

    def insert(self, new_score):
        record = Score(
            id=next(self._ids),
            player_name=new_score.player_name,
            user_id=new_score.user_id,
            category=new_score.category,
            difficulty=new_score.difficulty,
            time=new_score.time,
            moves=new_score.moves,
            score=new_score.score,
            created_at=new_score.created_at,
        )
        self.records.append(record)
        return record

    def find_recent(self, query):
        return next((record for record in self.records if query.matches(record)), None)

    def find_paged(self, score_filter, sort=LEADERBOARD_SORT, limit=50, offset=0):
        matching = [record for record in self.records if score_filter.matches(record)]
        matching.sort(key=lambda record: tuple(getattr(record, column) for column in sort))
        return matching[offset:offset + limit], len(matching)

    def stats(self):
        result = ScoreStats()
        result.total_games = len(self.records)
        result.unique_players = len({record.player_name.lower() for record in self.records})
        if self.records:
            result.average_score = round(sum(r.score for r in self.records) / len(self.records), 2)
            result.best_score = min(
                self.records, key=lambda r: tuple(getattr(r, column) for column in LEADERBOARD_SORT)
            )
        for record in self.records:
            result.category_counts[record.category] += 1
            result.difficulty_counts[record.difficulty] += 1
        return result


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def repository():
    return InMemoryScoreRepository()


@pytest.fixture
def service(repository, clock):
    return ScoreService(repository, settings=get_settings(), clock=clock)
