"""
Score persistence behind an explicit repository interface.

The submission service only talks to ``ScoreRepository``; production wires in
``SQLAlchemyScoreRepository`` and tests can swap in an in-memory fake. The
duplicate check (``find_recent``) and ``insert`` are separate calls with no
transaction spanning them, so two concurrent submissions can both pass the
check.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from memorymatch.catalog import CATEGORY_IDS, DIFFICULTY_IDS
from memorymatch.models import Score
from memorymatch.monitoring import DatabaseTrace

logger = logging.getLogger(__name__)

# Fastest first, then fewest moves, then oldest
LEADERBOARD_SORT = ("time", "moves", "created_at", "id")


@dataclass(frozen=True)
class NewScore:
    player_name: str
    category: str
    difficulty: str
    time: int
    moves: int
    score: int
    created_at: datetime
    user_id: Optional[int] = None


@dataclass(frozen=True)
class DuplicateQuery:
    """Tolerance band around a submission used to spot resubmissions."""
    player_name: str
    category: str
    difficulty: str
    time: int
    moves: int
    since: datetime
    time_tolerance: int = 5
    moves_tolerance: int = 2

    def matches(self, record) -> bool:
        created_at = record.created_at
        since = self.since
        if created_at.tzinfo is None and since.tzinfo is not None:
            since = since.replace(tzinfo=None)
        return (
            record.player_name.lower() == self.player_name.lower()
            and record.category == self.category
            and record.difficulty == self.difficulty
            and created_at >= since
            and abs(record.time - self.time) <= self.time_tolerance
            and abs(record.moves - self.moves) <= self.moves_tolerance
        )


@dataclass(frozen=True)
class ScoreFilter:
    """Leaderboard filter; ``None`` means no restriction."""
    category: Optional[str] = None
    difficulty: Optional[str] = None
    user_id: Optional[int] = None

    def matches(self, record) -> bool:
        return (
            (self.category is None or record.category == self.category)
            and (self.difficulty is None or record.difficulty == self.difficulty)
            and (self.user_id is None or record.user_id == self.user_id)
        )


@dataclass
class ScoreStats:
    total_games: int = 0
    unique_players: int = 0
    best_score: Optional[Score] = None
    average_score: float = 0.0
    category_counts: dict = field(default_factory=lambda: dict.fromkeys(CATEGORY_IDS, 0))
    difficulty_counts: dict = field(default_factory=lambda: dict.fromkeys(DIFFICULTY_IDS, 0))


class ScoreRepository(ABC):
    """Storage operations needed by the score endpoints."""

    @abstractmethod
    def insert(self, new_score: NewScore) -> Score:
        """Persist a score and return it with its assigned id."""

    @abstractmethod
    def find_recent(self, query: DuplicateQuery) -> Optional[Score]:
        """Return one record inside the duplicate band, or None."""

    @abstractmethod
    def find_paged(
        self,
        score_filter: ScoreFilter,
        sort: Sequence[str] = LEADERBOARD_SORT,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Score], int]:
        """Return one page of matching records and the total match count."""

    @abstractmethod
    def stats(self) -> ScoreStats:
        """Aggregate counts across every stored score."""


class SQLAlchemyScoreRepository(ScoreRepository):
    """Score repository backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, new_score: NewScore) -> Score:
        record = Score(
            player_name=new_score.player_name,
            user_id=new_score.user_id,
            category=new_score.category,
            difficulty=new_score.difficulty,
            time=new_score.time,
            moves=new_score.moves,
            score=new_score.score,
            created_at=new_score.created_at,
        )
        try:
            with DatabaseTrace("insert_score"):
                self.db.add(record)
                self.db.commit()
                self.db.refresh(record)
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.debug(f"Inserted score id={record.id} player={record.player_name!r}")
        return record

    def find_recent(self, query: DuplicateQuery) -> Optional[Score]:
        with DatabaseTrace("find_recent_score"):
            return (
                self.db.query(Score)
                .filter(
                    func.lower(Score.player_name) == query.player_name.lower(),
                    Score.category == query.category,
                    Score.difficulty == query.difficulty,
                    Score.created_at >= query.since,
                    Score.time.between(query.time - query.time_tolerance, query.time + query.time_tolerance),
                    Score.moves.between(query.moves - query.moves_tolerance, query.moves + query.moves_tolerance),
                )
                .first()
            )

    def _filtered(self, score_filter: ScoreFilter):
        query = self.db.query(Score)
        if score_filter.category is not None:
            query = query.filter(Score.category == score_filter.category)
        if score_filter.difficulty is not None:
            query = query.filter(Score.difficulty == score_filter.difficulty)
        if score_filter.user_id is not None:
            query = query.filter(Score.user_id == score_filter.user_id)
        return query

    def find_paged(self, score_filter, sort=LEADERBOARD_SORT, limit=50, offset=0):
        with DatabaseTrace("find_scores_page"):
            query = self._filtered(score_filter)
            total = query.count()
            records = (
                query.order_by(*(getattr(Score, column).asc() for column in sort))
                .offset(offset)
                .limit(limit)
                .all()
            )
        return records, total

    def stats(self) -> ScoreStats:
        result = ScoreStats()
        with DatabaseTrace("score_stats"):
            total, players, average = self.db.query(
                func.count(Score.id),
                func.count(func.distinct(func.lower(Score.player_name))),
                func.avg(Score.score),
            ).one()
            result.total_games = total or 0
            result.unique_players = players or 0
            result.average_score = round(float(average or 0), 2)

            for category, count in self.db.query(Score.category, func.count(Score.id)).group_by(Score.category):
                result.category_counts[category] = count
            for difficulty, count in self.db.query(Score.difficulty, func.count(Score.id)).group_by(Score.difficulty):
                result.difficulty_counts[difficulty] = count

            result.best_score = (
                self.db.query(Score)
                .order_by(*(getattr(Score, column).asc() for column in LEADERBOARD_SORT))
                .first()
            )
        return result
