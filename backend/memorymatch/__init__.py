"""Memory Match API: accounts, score submission and leaderboards for the memory game."""

__version__ = "2.0.0"
