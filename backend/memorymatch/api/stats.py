"""
Aggregate statistics and health endpoints.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from memorymatch.cache import STATS_KEY, cache
from memorymatch.config import get_settings
from memorymatch.database import get_db, ping_db
from memorymatch.deps import get_score_service
from memorymatch.errors import InternalError
from memorymatch.schemas import ErrorResponse, ScoreOut, StatsData, StatsResponse
from memorymatch.services.scores import ScoreService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stats"])
settings = get_settings()


@router.get(
    "/stats",
    response_model=StatsResponse,
    responses={500: {"model": ErrorResponse, "description": "Internal server error"}},
    summary="Get game statistics",
    description="""
    Totals across every stored score: number of games, distinct players,
    the fastest game, average score and per-category / per-difficulty counts.
    Cached for a short TTL and invalidated on every new score.
    """
)
async def get_stats(service: ScoreService = Depends(get_score_service)):
    cached_data = cache.get(STATS_KEY)
    if cached_data:
        logger.debug("Cache hit for stats")
        return StatsResponse.model_validate(cached_data)

    try:
        stats = service.stats()
    except Exception as e:
        logger.error(f"Failed to compute stats: {str(e)}", exc_info=True)
        raise InternalError("Failed to fetch statistics", str(e) if settings.is_development else None)

    response = StatsResponse(
        data=StatsData(
            total_games=stats.total_games,
            unique_players=stats.unique_players,
            best_score=ScoreOut.from_record(stats.best_score) if stats.best_score else None,
            average_score=stats.average_score,
            category_counts=stats.category_counts,
            difficulty_counts=stats.difficulty_counts,
        ),
        message="Statistics retrieved successfully",
    )
    cache.set(STATS_KEY, response.model_dump(by_alias=True, mode="json"), settings.cache_ttl_stats)
    return response


@router.get(
    "/health",
    responses={
        200: {
            "description": "Health check response",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "database": "ok",
                        "cache": "ok",
                        "timestamp": "2026-10-19T10:30:00+00:00"
                    }
                }
            }
        }
    },
    summary="Health check",
)
async def health_check(db: Session = Depends(get_db)):
    """
    Report database and Redis connectivity.

    The cache is optional, so a missing cache only degrades the status when
    Redis is configured.
    """
    health_status = {
        "status": "healthy",
        "database": "ok",
        "cache": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

    try:
        ping_db(db)
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        health_status["database"] = "error"
        health_status["status"] = "degraded"

    if not settings.redis_url:
        health_status["cache"] = "disabled"
    elif not cache.ping():
        logger.warning("Redis health check failed")
        health_status["cache"] = "error"
        health_status["status"] = "degraded"

    return health_status
