"""
Score submission and leaderboard queries.

Submission runs in a fixed order:

1. presence, range and catalog validation (first failure wins)
2. duplicate suppression against recently stored scores
3. score derivation
4. a single insert

The duplicate check is a plain read followed by a write. Two submissions that
both read before either writes will both be stored; the window is a heuristic
against client retries, not an exactly-once guarantee.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from memorymatch.catalog import ALL, CATEGORY_IDS, DIFFICULTY_IDS
from memorymatch.config import Settings, get_settings
from memorymatch.errors import ConflictError, ValidationError
from memorymatch.models import Score
from memorymatch.monitoring import monitor_transaction, record_custom_event, record_custom_metric
from memorymatch.repository import (
    DuplicateQuery, LEADERBOARD_SORT, NewScore, ScoreFilter, ScoreRepository,
)
from memorymatch.schemas import ScoreSubmission

logger = logging.getLogger(__name__)

MIN_TIME, MAX_TIME = 1, 3600
MIN_MOVES, MAX_MOVES = 1, 1000
MAX_PLAYER_NAME_LENGTH = 50
# Keeps (page - 1) * limit inside a 64-bit SQL integer
MAX_PAGE = 1_000_000

BASE_SCORE = 1000
TIME_PENALTY = 5
MOVE_PENALTY = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_score(time: int, moves: int) -> int:
    """Derive the leaderboard score; never negative, never increasing in time or moves."""
    return max(BASE_SCORE - (time * TIME_PENALTY + moves * MOVE_PENALTY), 0)


@dataclass(frozen=True)
class ValidSubmission:
    player_name: str
    category: str
    difficulty: str
    time: int
    moves: int


def validate_submission(submission: ScoreSubmission) -> ValidSubmission:
    """
    Check a submission and return it normalised.

    Raises:
        ValidationError: on the first failing check
    """
    player_name = (submission.player_name or "").strip()
    if (
        not player_name
        or not submission.category
        or not submission.difficulty
        or submission.time is None
        or submission.moves is None
    ):
        raise ValidationError("Missing required fields: playerName, category, difficulty, time, moves")

    if not MIN_TIME <= submission.time <= MAX_TIME:
        raise ValidationError(f"Invalid time. Time must be between {MIN_TIME} and {MAX_TIME} seconds")

    if not MIN_MOVES <= submission.moves <= MAX_MOVES:
        raise ValidationError(f"Invalid moves. Moves must be between {MIN_MOVES} and {MAX_MOVES}")

    if submission.category not in CATEGORY_IDS:
        raise ValidationError(f"Invalid category. Valid categories: {', '.join(CATEGORY_IDS)}")

    if submission.difficulty not in DIFFICULTY_IDS:
        raise ValidationError(f"Invalid difficulty. Valid difficulties: {', '.join(DIFFICULTY_IDS)}")

    if len(player_name) > MAX_PLAYER_NAME_LENGTH:
        raise ValidationError(
            f"Invalid playerName. Player name must be at most {MAX_PLAYER_NAME_LENGTH} characters"
        )

    return ValidSubmission(
        player_name=player_name,
        category=submission.category,
        difficulty=submission.difficulty,
        time=submission.time,
        moves=submission.moves,
    )


def normalize_filter(value: Optional[str]) -> Optional[str]:
    """Map absent or "all" filter values to None."""
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() == ALL:
        return None
    return value


@dataclass
class LeaderboardPage:
    records: list
    total_count: int
    page: int
    limit: int
    category: Optional[str] = None
    difficulty: Optional[str] = None

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.total_count else 0


class ScoreService:
    """Score operations over a ``ScoreRepository``."""

    def __init__(
        self,
        repository: ScoreRepository,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.clock = clock

    @monitor_transaction("ScoreService.submit")
    def submit(self, submission: ScoreSubmission, user_id: Optional[int] = None) -> Score:
        """
        Validate, de-duplicate and store one finished game.

        Args:
            submission: raw client payload
            user_id: id of the authenticated caller, None for anonymous play

        Returns:
            The stored Score with its assigned id

        Raises:
            ValidationError: invalid payload
            ConflictError: a near-identical score was stored moments ago
        """
        valid = validate_submission(submission)
        now = self.clock()

        duplicate = self.repository.find_recent(DuplicateQuery(
            player_name=valid.player_name,
            category=valid.category,
            difficulty=valid.difficulty,
            time=valid.time,
            moves=valid.moves,
            since=now - timedelta(seconds=self.settings.duplicate_window_seconds),
            time_tolerance=self.settings.duplicate_time_tolerance,
            moves_tolerance=self.settings.duplicate_moves_tolerance,
        ))
        if duplicate is not None:
            logger.info(
                f"Duplicate score rejected: player={valid.player_name!r}, "
                f"matches score id={duplicate.id}"
            )
            record_custom_metric("Scores/Duplicates", 1)
            raise ConflictError(
                "Duplicate score detected",
                "A very similar score was already submitted recently",
            )

        record = self.repository.insert(NewScore(
            player_name=valid.player_name,
            user_id=user_id,
            category=valid.category,
            difficulty=valid.difficulty,
            time=valid.time,
            moves=valid.moves,
            score=compute_score(valid.time, valid.moves),
            created_at=now,
        ))
        record_custom_event("ScoreSubmission", {
            "category": record.category,
            "difficulty": record.difficulty,
            "time": record.time,
            "moves": record.moves,
            "score": record.score,
        })
        return record

    def leaderboard(
        self,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        limit: Optional[int] = None,
        page: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> LeaderboardPage:
        """Return one page of scores, fastest and fewest moves first."""
        if limit is None:
            limit = self.settings.default_page_size
        limit = max(1, min(limit, self.settings.max_page_size))
        page = max(1, min(page or 1, MAX_PAGE))
        category = normalize_filter(category)
        difficulty = normalize_filter(difficulty)

        records, total = self.repository.find_paged(
            ScoreFilter(category=category, difficulty=difficulty, user_id=user_id),
            sort=LEADERBOARD_SORT,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return LeaderboardPage(
            records=records,
            total_count=total,
            page=page,
            limit=limit,
            category=category,
            difficulty=difficulty,
        )

    def stats(self):
        return self.repository.stats()
