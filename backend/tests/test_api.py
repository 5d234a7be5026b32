"""
Integration tests for the Memory Match API.
"""
import pytest

from memorymatch.config import get_settings
from memorymatch.models import Score


# ============================================================================
# Root, Health and Error Shape Tests
# ============================================================================

def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert "POST /api/scores - Submit a new score" in data["endpoints"]


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["database"] == "ok"
    assert data["cache"] == "disabled"
    assert data["status"] == "healthy"


def test_unknown_route_returns_404(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "Route not found",
        "message": "Cannot GET /api/nope",
    }


def test_responses_carry_request_id(client):
    response = client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert "X-RateLimit-Limit" in response.headers


# ============================================================================
# Catalog Tests
# ============================================================================

def test_get_categories(client):
    response = client.get("/api/categories")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["count"] == 4
    assert [item["id"] for item in data["data"]] == ["heroes", "movies", "musicians", "videogames"]
    assert data["data"][3]["name"] == "Video Games"
    assert "max-age" in response.headers["Cache-Control"]


def test_get_difficulties(client):
    response = client.get("/api/difficulties")
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 3
    assert [item["id"] for item in data["data"]] == ["easy", "medium", "hard"]


# ============================================================================
# Submit Score Tests
# ============================================================================

def test_submit_score_success(submit):
    response = submit()
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Score saved! Ann completed heroes on easy difficulty."

    data = body["data"]
    assert data["id"] > 0
    assert data["playerName"] == "Ann"
    assert data["score"] == 710
    assert data["userId"] is not None
    assert len(data["date"]) == 10


def test_submit_score_ignores_client_score(client, auth_headers):
    response = client.post(
        "/api/scores",
        json={"playerName": "Ann", "category": "heroes", "difficulty": "easy",
              "time": 50, "moves": 20, "score": 999999},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["data"]["score"] == 710


def test_submit_score_trims_player_name(submit):
    response = submit(player_name="  Ann  ")
    assert response.status_code == 201
    assert response.json()["data"]["playerName"] == "Ann"


@pytest.mark.parametrize("missing", ["playerName", "category", "difficulty", "time", "moves"])
def test_submit_score_missing_field(client, auth_headers, test_db, missing):
    payload = {"playerName": "Ann", "category": "heroes", "difficulty": "easy", "time": 50, "moves": 20}
    del payload[missing]

    response = client.post("/api/scores", json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"].startswith("Missing required fields")
    assert test_db.query(Score).count() == 0


@pytest.mark.parametrize("time", [0, 3601])
def test_submit_score_invalid_time(submit, time):
    response = submit(time=time)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid time")


def test_submit_score_time_bounds_accepted(submit):
    assert submit(player_name="Fast", time=1).status_code == 201
    assert submit(player_name="Slow", time=3600).status_code == 201


def test_submit_score_invalid_moves(submit):
    response = submit(moves=1001)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid moves")


def test_submit_score_unknown_category(submit):
    response = submit(category="villains")
    assert response.status_code == 400
    error = response.json()["error"]
    for category in ("heroes", "movies", "musicians", "videogames"):
        assert category in error


def test_submit_score_unknown_difficulty(submit):
    response = submit(difficulty="nightmare")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid difficulty. Valid difficulties: easy, medium, hard"


def test_submit_score_wrong_type(client, auth_headers):
    response = client.post(
        "/api/scores",
        json={"playerName": "Ann", "category": "heroes", "difficulty": "easy", "time": "fast", "moves": 20},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_submit_score_boolean_numbers_rejected(client, auth_headers, test_db):
    response = client.post(
        "/api/scores",
        json={"playerName": "Ann", "category": "heroes", "difficulty": "easy", "time": True, "moves": True},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert test_db.query(Score).count() == 0


def test_submit_score_numeric_strings_accepted(client, auth_headers):
    response = client.post(
        "/api/scores",
        json={"playerName": "Ann", "category": "heroes", "difficulty": "easy", "time": "50", "moves": "20"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["data"]["score"] == 710


def test_duplicate_submission_rejected(submit, test_db):
    first = submit(player_name="Ann", time=50, moves=20)
    second = submit(player_name="ann", time=53, moves=21)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json() == {
        "success": False,
        "error": "Duplicate score detected",
        "message": "A very similar score was already submitted recently",
    }
    assert test_db.query(Score).count() == 1


def test_similar_score_other_difficulty_accepted(submit):
    assert submit(difficulty="easy").status_code == 201
    assert submit(difficulty="medium").status_code == 201


# ============================================================================
# Submission Auth Tests
# ============================================================================

def test_submit_score_requires_token(submit):
    response = submit(headers={})
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_submit_score_rejects_bad_token(submit):
    response = submit(headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_anonymous_submission_when_enabled(submit, monkeypatch):
    monkeypatch.setattr(get_settings(), "allow_anonymous_scores", True)

    response = submit(headers={})

    assert response.status_code == 201
    assert response.json()["data"]["userId"] is None


def test_bad_token_rejected_even_when_anonymous_allowed(submit, monkeypatch):
    monkeypatch.setattr(get_settings(), "allow_anonymous_scores", True)
    response = submit(headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


# ============================================================================
# Leaderboard Tests
# ============================================================================

def test_get_scores_empty(client):
    response = client.get("/api/scores")
    assert response.status_code == 200
    data = response.json()
    assert data["data"] == []
    assert data["count"] == 0
    assert data["totalCount"] == 0
    assert data["page"] == 1
    assert data["totalPages"] == 0


def test_get_scores_filtered_and_sorted(client, submit):
    games = [
        ("p1", "heroes", "easy", 90, 30),
        ("p2", "heroes", "easy", 40, 25),
        ("p3", "heroes", "easy", 40, 12),
        ("p4", "heroes", "hard", 10, 10),
        ("p5", "movies", "easy", 5, 5),
    ]
    for name, category, difficulty, time, moves in games:
        assert submit(name, category, difficulty, time, moves).status_code == 201

    response = client.get("/api/scores?category=heroes&difficulty=easy&limit=10")

    assert response.status_code == 200
    data = response.json()
    assert len(data["data"]) <= 10
    assert [s["playerName"] for s in data["data"]] == ["p3", "p2", "p1"]
    assert all(s["category"] == "heroes" and s["difficulty"] == "easy" for s in data["data"])
    assert data["filters"] == {"category": "heroes", "difficulty": "easy", "limit": 10, "page": 1}


def test_get_scores_all_means_no_filter(client, submit):
    submit("p1", "heroes", "easy")
    submit("p2", "movies", "hard")

    response = client.get("/api/scores?category=all&difficulty=all")
    assert response.json()["totalCount"] == 2


def test_get_scores_pagination(client, submit):
    for index in range(5):
        submit(f"p{index}", time=10 + index)

    first = client.get("/api/scores?limit=2&page=1").json()
    last = client.get("/api/scores?limit=2&page=3").json()

    assert first["count"] == 2
    assert first["totalCount"] == 5
    assert first["totalPages"] == 3
    assert [s["playerName"] for s in first["data"]] == ["p0", "p1"]
    assert [s["playerName"] for s in last["data"]] == ["p4"]


def test_get_scores_limit_is_clamped(client, submit):
    submit()
    response = client.get("/api/scores?limit=100000")
    assert response.status_code == 200
    assert response.json()["filters"]["limit"] == 100


def test_get_scores_huge_page_is_clamped(client, submit):
    submit()
    response = client.get("/api/scores?page=100000000000000000000")

    assert response.status_code == 200
    data = response.json()
    assert data["data"] == []
    assert data["totalCount"] == 1
    assert data["page"] == 1_000_000


def test_get_my_scores(client, register, submit):
    other = register(username="player2")
    other_headers = {"Authorization": f"Bearer {other['token']}"}

    submit(player_name="Mine")
    submit(player_name="Theirs", headers=other_headers)

    response = client.get("/api/scores/me", headers=other_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["totalCount"] == 1
    assert data["data"][0]["playerName"] == "Theirs"
    assert data["data"][0]["userId"] == other["id"]


def test_get_my_scores_requires_token(client):
    assert client.get("/api/scores/me").status_code == 401


# ============================================================================
# Stats Tests
# ============================================================================

def test_stats_empty(client):
    response = client.get("/api/stats")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalGames"] == 0
    assert data["uniquePlayers"] == 0
    assert data["bestScore"] is None
    assert data["averageScore"] == 0
    assert data["categoryCounts"] == {"heroes": 0, "movies": 0, "musicians": 0, "videogames": 0}


def test_stats_after_games(client, submit):
    submit("Ann", "heroes", "easy", 50, 20)
    submit("ann", "movies", "easy", 30, 14)
    submit("Bob", "heroes", "hard", 120, 40)

    data = client.get("/api/stats").json()["data"]

    assert data["totalGames"] == 3
    assert data["uniquePlayers"] == 2
    assert data["bestScore"]["time"] == 30
    assert data["categoryCounts"]["heroes"] == 2
    assert data["categoryCounts"]["movies"] == 1
    assert data["categoryCounts"]["videogames"] == 0
    assert data["difficultyCounts"] == {"easy": 2, "medium": 0, "hard": 1}


def test_persistence_failure_returns_generic_500(submit, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from memorymatch.repository import SQLAlchemyScoreRepository

    def broken_insert(self, new_score):
        raise OperationalError("INSERT INTO scores", {}, Exception("connection lost"))

    monkeypatch.setattr(SQLAlchemyScoreRepository, "insert", broken_insert)

    response = submit()

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to submit score to database"}


def test_persistence_failure_exposes_detail_in_development(submit, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from memorymatch.repository import SQLAlchemyScoreRepository

    def broken_insert(self, new_score):
        raise OperationalError("INSERT INTO scores", {}, Exception("connection lost"))

    monkeypatch.setattr(SQLAlchemyScoreRepository, "insert", broken_insert)
    monkeypatch.setattr(get_settings(), "environment", "development")

    response = submit()

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to submit score to database"
    assert "connection lost" in body["message"]
