from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from memorymatch.database import Base


class Account(Base):
    """Registered player with a hashed password."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    join_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)


class Score(Base):
    """
    A single completed memory game.

    Rows are written once by the submission endpoint and never updated.
    ``score`` is always derived from ``time`` and ``moves`` on the server.
    """
    __tablename__ = "scores"

    id = Column(Integer, primary_key=True, index=True)
    player_name = Column(String(50), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    category = Column(String(20), nullable=False, index=True)
    difficulty = Column(String(10), nullable=False, index=True)
    time = Column(Integer, nullable=False, index=True)
    moves = Column(Integer, nullable=False)
    score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Composite indexes for leaderboard and duplicate lookups
    __table_args__ = (
        Index('idx_scores_category_difficulty_time', category, difficulty, time),
        Index('idx_scores_time_moves', time, moves),
        Index('idx_scores_player_created', player_name, created_at.desc()),
        Index('idx_scores_user_created', user_id, created_at.desc()),
    )
