"""
Score endpoints: submission and leaderboard pages.

This module implements:
- Score submission with validation and duplicate suppression
- Public leaderboard pages with filtering, pagination and caching
- The caller's own score history
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from memorymatch.cache import cache, scores_page_key
from memorymatch.config import get_settings
from memorymatch.deps import get_current_account, get_score_service, get_submitting_account
from memorymatch.errors import APIError, InternalError
from memorymatch.models import Account
from memorymatch.schemas import (
    ErrorResponse, ScoreFilters, ScoreListResponse, ScoreOut, ScoreResponse, ScoreSubmission,
)
from memorymatch.services.scores import LeaderboardPage, ScoreService, normalize_filter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["scores"])
settings = get_settings()


def _page_response(page: LeaderboardPage, message: str) -> ScoreListResponse:
    return ScoreListResponse(
        data=[ScoreOut.from_record(record) for record in page.records],
        count=len(page.records),
        total_count=page.total_count,
        page=page.page,
        total_pages=page.total_pages,
        filters=ScoreFilters(
            category=page.category,
            difficulty=page.difficulty,
            limit=page.limit,
            page=page.page,
        ),
        message=message,
    )


@router.post(
    "/scores",
    response_model=ScoreResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing, out-of-range or unknown field"},
        401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
        409: {
            "model": ErrorResponse,
            "description": "Duplicate submission",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "error": "Duplicate score detected",
                        "message": "A very similar score was already submitted recently"
                    }
                }
            }
        },
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Submit a finished game",
    description="""
    Store the result of a finished memory game.

    - Validates presence, ranges (time 1-3600 s, moves 1-1000) and catalog values
    - Rejects a near-identical score for the same player, category and difficulty
      stored in the last 10 seconds (time within 5 s, moves within 2)
    - Computes `score = max(1000 - (time*5 + moves*2), 0)` on the server
    - Invalidates cached leaderboard pages and stats
    """
)
async def submit_score(
    submission: ScoreSubmission,
    request: Request,
    account: Optional[Account] = Depends(get_submitting_account),
    service: ScoreService = Depends(get_score_service),
):
    """
    Submit a finished game.

    Args:
        submission: playerName, category, difficulty, time and moves
        request: FastAPI request object for logging
        account: authenticated caller, None for anonymous submissions
        service: score service bound to the request's database session

    Returns:
        ScoreResponse with the stored record

    Raises:
        ValidationError (400), ConflictError (409), InternalError (500)
    """
    logger.info(
        f"Score submission request: player={submission.player_name!r}, "
        f"category={submission.category}, difficulty={submission.difficulty}, "
        f"time={submission.time}, moves={submission.moves}, "
        f"user_id={account.id if account else None}, "
        f"client_ip={request.client.host if request.client else 'unknown'}"
    )

    try:
        record = service.submit(submission, user_id=account.id if account else None)
    except APIError:
        raise
    except Exception as e:
        logger.error(f"Score submission failed: error={str(e)}", exc_info=True)
        raise InternalError("Failed to submit score to database", str(e) if settings.is_development else None)

    cache.invalidate_scores()

    logger.info(f"Score saved: id={record.id}, score={record.score}")
    return ScoreResponse(
        data=ScoreOut.from_record(record),
        message=(
            f"Score saved! {record.player_name} completed {record.category} "
            f"on {record.difficulty} difficulty."
        ),
    )


@router.get(
    "/scores",
    response_model=ScoreListResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed query parameter"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Get leaderboard",
    description="""
    Scores ordered by time ascending, then moves ascending.

    `category` and `difficulty` filter the page ("all" or absent means no filter).
    `limit` defaults to 50 and is clamped to 1-100; `page` is 1-based.
    Pages are cached briefly and invalidated on every new score.
    """
)
async def get_scores(
    category: Optional[str] = Query(None, description="Category id or 'all'", examples=["heroes"]),
    difficulty: Optional[str] = Query(None, description="Difficulty id or 'all'", examples=["easy"]),
    limit: Optional[int] = Query(None, description="Page size (clamped to 1-100)", examples=[10]),
    page: Optional[int] = Query(None, description="1-based page number", examples=[1]),
    service: ScoreService = Depends(get_score_service),
):
    cache_key = scores_page_key(normalize_filter(category), normalize_filter(difficulty), limit, page)

    cached_data = cache.get(cache_key)
    if cached_data:
        logger.debug(f"Cache hit for scores page: {cache_key}")
        return ScoreListResponse.model_validate(cached_data)

    try:
        result = service.leaderboard(category=category, difficulty=difficulty, limit=limit, page=page)
    except APIError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch scores: {str(e)}", exc_info=True)
        raise InternalError("Failed to fetch scores from database", str(e) if settings.is_development else None)

    response = _page_response(result, "Scores retrieved successfully")
    cache.set(cache_key, response.model_dump(by_alias=True, mode="json"), settings.cache_ttl_scores)
    logger.info(f"Retrieved {response.count} of {response.total_count} scores from database")
    return response


@router.get(
    "/scores/me",
    response_model=ScoreListResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Get my scores",
    description="Same as `GET /api/scores`, restricted to the caller's own scores. Never cached.",
)
async def get_my_scores(
    category: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    page: Optional[int] = Query(None),
    account: Account = Depends(get_current_account),
    service: ScoreService = Depends(get_score_service),
):
    try:
        result = service.leaderboard(
            category=category, difficulty=difficulty, limit=limit, page=page, user_id=account.id,
        )
    except APIError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch scores for user_id={account.id}: {str(e)}", exc_info=True)
        raise InternalError("Failed to fetch scores from database", str(e) if settings.is_development else None)
    return _page_response(result, f"Scores for {account.username} retrieved successfully")
