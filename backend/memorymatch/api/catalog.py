"""Static catalog endpoints: game categories and difficulty levels."""
from fastapi import APIRouter, Response

from memorymatch.catalog import CATEGORIES, DIFFICULTIES
from memorymatch.schemas import CatalogItem, CatalogResponse

router = APIRouter(prefix="/api", tags=["catalog"])

# The lists never change while the process runs
CATALOG_CACHE_CONTROL = "public, max-age=3600"


def _catalog_response(entries, message: str) -> CatalogResponse:
    return CatalogResponse(
        data=[CatalogItem(**entry.to_dict()) for entry in entries],
        count=len(entries),
        message=message,
    )


@router.get(
    "/categories",
    response_model=CatalogResponse,
    summary="Get all game categories",
)
async def get_categories(response: Response):
    response.headers["Cache-Control"] = CATALOG_CACHE_CONTROL
    return _catalog_response(CATEGORIES, "Game categories retrieved successfully")


@router.get(
    "/difficulties",
    response_model=CatalogResponse,
    summary="Get all difficulty levels",
)
async def get_difficulties(response: Response):
    response.headers["Cache-Control"] = CATALOG_CACHE_CONTROL
    return _catalog_response(DIFFICULTIES, "Difficulty levels retrieved successfully")
