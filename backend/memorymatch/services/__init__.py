"""Domain services: score submission, leaderboard queries and accounts.

Routes call into these modules; they raise ``memorymatch.errors`` exceptions
and never touch HTTP objects directly.
"""
