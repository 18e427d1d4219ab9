"""
Motor de matching.

Puntúa propiedades contra las preferencias de cada investor y
notifica los mejores matches.
"""

from aceprops.matching.scorer import (
    BreakdownItem,
    MatchResult,
    MatchScore,
    PreferenceMatcher,
)
from aceprops.matching.engine import MatchingEngine, rank_matches

__all__ = [
    "BreakdownItem",
    "MatchResult",
    "MatchScore",
    "PreferenceMatcher",
    "MatchingEngine",
    "rank_matches",
]
