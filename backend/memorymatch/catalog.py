"""
Static game catalog: card categories and difficulty levels.

Both lists are immutable and built once at import time.
"""
from typing import NamedTuple


class CatalogEntry(NamedTuple):
    id: str
    name: str
    description: str

    def to_dict(self) -> dict:
        return self._asdict()


CATEGORIES = (
    CatalogEntry("heroes", "Heroes", "Superhero Funko Pops"),
    CatalogEntry("movies", "Movies", "Movie character Funko Pops"),
    CatalogEntry("musicians", "Musicians", "Music artist Funko Pops"),
    CatalogEntry("videogames", "Video Games", "Video game character Funko Pops"),
)

DIFFICULTIES = (
    CatalogEntry("easy", "Easy", "Perfect for beginners"),
    CatalogEntry("medium", "Medium", "Good challenge"),
    CatalogEntry("hard", "Hard", "For experts"),
)

CATEGORY_IDS = tuple(entry.id for entry in CATEGORIES)
DIFFICULTY_IDS = tuple(entry.id for entry in DIFFICULTIES)

# Filter value meaning "no filter" in leaderboard queries
ALL = "all"
