"""
Roster analysis for the Draft Assistant

Pure functions: no I/O, no shared state, safe to call from any task.
"""
import logging
from collections import Counter
from typing import Dict, Iterable, Mapping

from constants import BALANCED_ROSTER, IDEAL_ROSTER_COMPOSITION
from models.draft import Sport
from models.player import Player
from models.recommendation import RosterAnalysis

logger = logging.getLogger(f'{__name__}.RosterService')


def ideal_composition_for(sport) -> Dict[str, int]:
    """
    Get the ideal positional composition for a sport.

    Args:
        sport: Sport member or its string value

    Returns:
        Mapping of position to ideal count (a copy; safe to modify)
    """
    key = sport.value if isinstance(sport, Sport) else str(sport).upper()
    try:
        return dict(IDEAL_ROSTER_COMPOSITION[key])
    except KeyError:
        raise ValueError(f"No roster composition defined for sport: {sport}")


def count_positions(roster: Iterable[Player]) -> Counter:
    """Count players by primary position (UTIL when unknown)."""
    return Counter(player.primary_position for player in roster)


def analyze_roster(roster: Iterable[Player], ideal_composition: Mapping[str, int]) -> RosterAnalysis:
    """
    Derive positional strengths and needs of a roster.

    A position is a strength once it reaches its ideal count, and a need while
    it is more than one player short. Being exactly one short is neither.

    Args:
        roster: Players on one team
        ideal_composition: Position to ideal count

    Returns:
        RosterAnalysis; needs holds the balanced-roster sentinel when empty

    Examples:
        >>> analyze_roster([], {"PG": 2, "C": 2}).needs
        ['PG (have 0, need 2)', 'C (have 0, need 2)']
    """
    counts = count_positions(roster)

    strengths = []
    needs = []
    for position, ideal in ideal_composition.items():
        have = counts.get(position, 0)
        if have >= ideal:
            strengths.append(f"{position} ({have})")
        elif have < ideal - 1:
            needs.append(f"{position} (have {have}, need {ideal})")

    if not needs:
        needs = [BALANCED_ROSTER]

    logger.debug(f"Roster analysis: {len(strengths)} strengths, needs={needs}")
    return RosterAnalysis(strengths=strengths, needs=needs)
