from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from typing import Optional


class CamelModel(BaseModel):
    """Base schema exposing camelCase keys on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ScoreSubmission(CamelModel):
    """
    Schema for a finished game sent by the client.

    Every field is optional at the schema level so that presence, range and
    catalog checks run in a fixed order in the submission service and produce
    the documented messages.

    Example:
        {
            "playerName": "Ann",
            "category": "heroes",
            "difficulty": "easy",
            "time": 50,
            "moves": 20
        }
    """
    player_name: Optional[str] = Field(None, description="Name shown on the leaderboard (1-50 chars)")
    category: Optional[str] = Field(None, description="One of heroes, movies, musicians, videogames")
    difficulty: Optional[str] = Field(None, description="One of easy, medium, hard")
    time: Optional[int] = Field(None, description="Game duration in seconds (1-3600)")
    moves: Optional[int] = Field(None, description="Number of moves (1-1000)")

    @field_validator("time", "moves", mode="before")
    @classmethod
    def reject_booleans(cls, value):
        # bool is an int subclass; lax mode would store true as 1
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "playerName": "Ann",
                "category": "heroes",
                "difficulty": "easy",
                "time": 50,
                "moves": 20
            }
        }


class ScoreOut(CamelModel):
    """A persisted score as returned to clients."""
    id: int = Field(..., description="Score identifier", examples=[42])
    player_name: str = Field(..., examples=["Ann"])
    user_id: Optional[int] = Field(None, description="Owning account, absent for anonymous scores")
    category: str = Field(..., examples=["heroes"])
    difficulty: str = Field(..., examples=["easy"])
    time: int = Field(..., examples=[50])
    moves: int = Field(..., examples=[20])
    score: int = Field(..., description="max(1000 - (time*5 + moves*2), 0)", examples=[710])
    date: str = Field(..., description="Creation date (YYYY-MM-DD)", examples=["2026-10-19"])
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")

    @classmethod
    def from_record(cls, record) -> "ScoreOut":
        created_at = record.created_at
        if created_at.tzinfo is None:
            # SQLite drops tzinfo; values are always stored as UTC
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=record.id,
            player_name=record.player_name,
            user_id=record.user_id,
            category=record.category,
            difficulty=record.difficulty,
            time=record.time,
            moves=record.moves,
            score=record.score,
            date=created_at.date().isoformat(),
            created_at=created_at,
        )


class ScoreResponse(CamelModel):
    success: bool = True
    data: ScoreOut
    message: str


class ScoreFilters(CamelModel):
    category: Optional[str] = None
    difficulty: Optional[str] = None
    limit: int
    page: int


class ScoreListResponse(CamelModel):
    """
    Paginated leaderboard page.

    Example:
        {
            "success": true,
            "data": [...],
            "count": 10,
            "totalCount": 125,
            "page": 1,
            "totalPages": 13,
            "filters": {"category": "heroes", "difficulty": "easy", "limit": 10, "page": 1},
            "message": "Scores retrieved successfully"
        }
    """
    success: bool = True
    data: list[ScoreOut]
    count: int = Field(..., description="Number of records on this page")
    total_count: int = Field(..., description="Number of records matching the filters")
    page: int
    total_pages: int
    filters: ScoreFilters
    message: str


class CatalogItem(CamelModel):
    id: str
    name: str
    description: str


class CatalogResponse(CamelModel):
    success: bool = True
    data: list[CatalogItem]
    count: int
    message: str


class StatsData(CamelModel):
    total_games: int
    unique_players: int
    best_score: Optional[ScoreOut] = Field(None, description="Fastest game, ties broken by fewest moves")
    average_score: float
    category_counts: dict[str, int]
    difficulty_counts: dict[str, int]


class StatsResponse(CamelModel):
    success: bool = True
    data: StatsData
    message: str


class RegisterRequest(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthData(CamelModel):
    id: int
    username: str
    email: str
    token: str


class AuthResponse(CamelModel):
    success: bool = True
    data: AuthData
    message: str


class ProfileData(CamelModel):
    id: int
    username: str
    email: str
    join_date: Optional[datetime] = None
    last_login: Optional[datetime] = None


class ProfileResponse(CamelModel):
    success: bool = True
    data: ProfileData
    message: str


class ErrorResponse(BaseModel):
    """
    Schema for error responses.

    Example:
        {
            "success": false,
            "error": "Duplicate score detected",
            "message": "A very similar score was already submitted recently"
        }
    """
    success: bool = Field(False, examples=[False])
    error: str = Field(..., description="Error type or message", examples=["Duplicate score detected"])
    message: Optional[str] = Field(None, description="Detailed error message")
