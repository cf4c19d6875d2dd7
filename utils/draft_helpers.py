"""
Draft utility functions for the Draft Assistant

Pick order calculation. Each draft type maps to one order strategy, and every
caller resolves seats through ``seat()`` rather than branching on draft type.
"""
import math
from typing import NamedTuple, Optional

from models.draft import Draft, DraftType


class PickSlot(NamedTuple):
    """Where an overall pick falls in the draft."""

    round: int
    pick_in_round: int
    team_number: Optional[int]  # None when any seat may pick (auction)


def round_and_position(pick_number: int, num_teams: int) -> tuple:
    """
    Split an overall pick number into (round, pick_in_round).

    Examples:
        >>> round_and_position(1, 12)
        (1, 1)

        >>> round_and_position(13, 12)
        (2, 1)

        >>> round_and_position(19, 12)
        (2, 7)
    """
    if pick_number < 1:
        raise ValueError(f"pick_number must be >= 1, got {pick_number}")
    round_num = math.ceil(pick_number / num_teams)
    return round_num, pick_number - (round_num - 1) * num_teams


class PickOrder:
    """Strategy that assigns the seat for each overall pick."""

    draft_type: DraftType
    has_fixed_order = True

    def team_for(self, round_num: int, pick_in_round: int, num_teams: int) -> Optional[int]:
        raise NotImplementedError

    def slot(self, pick_number: int, num_teams: int) -> PickSlot:
        round_num, pick_in_round = round_and_position(pick_number, num_teams)
        return PickSlot(round_num, pick_in_round, self.team_for(round_num, pick_in_round, num_teams))


class SnakeOrder(PickOrder):
    """Odd rounds run seat 1..N, even rounds run N..1."""

    draft_type = DraftType.SNAKE

    def team_for(self, round_num: int, pick_in_round: int, num_teams: int) -> int:
        if round_num % 2 == 1:
            return pick_in_round
        return num_teams - pick_in_round + 1


class LinearOrder(PickOrder):
    """Same order every round."""

    draft_type = DraftType.LINEAR

    def team_for(self, round_num: int, pick_in_round: int, num_teams: int) -> int:
        return pick_in_round


class AuctionOrder(PickOrder):
    """Players are won by bid, so no seat owns a pick ahead of time."""

    draft_type = DraftType.AUCTION
    has_fixed_order = False

    def team_for(self, round_num: int, pick_in_round: int, num_teams: int) -> None:
        return None


PICK_ORDERS = {
    DraftType.SNAKE.value: SnakeOrder(),
    DraftType.LINEAR.value: LinearOrder(),
    DraftType.AUCTION.value: AuctionOrder(),
}


def get_pick_order(draft_type) -> PickOrder:
    """
    Get the pick order strategy for a draft type.

    Args:
        draft_type: DraftType member or its string value

    Returns:
        PickOrder strategy instance
    """
    key = draft_type.value if isinstance(draft_type, DraftType) else str(draft_type)
    try:
        return PICK_ORDERS[key]
    except KeyError:
        raise ValueError(f"Unknown draft type: {draft_type}")


def seat(draft: Draft, pick_number: int) -> PickSlot:
    """
    Calculate round, position in round and seat for an overall pick.

    Args:
        draft: Draft whose type and team count decide the order
        pick_number: Overall pick number (1-based)

    Returns:
        PickSlot(round, pick_in_round, team_number)

    Examples:
        12-team snake draft:
        >>> seat(draft, 12)
        PickSlot(round=1, pick_in_round=12, team_number=12)

        >>> seat(draft, 13)
        PickSlot(round=2, pick_in_round=1, team_number=12)

        >>> seat(draft, 19)
        PickSlot(round=2, pick_in_round=7, team_number=6)
    """
    return get_pick_order(draft.draft_type).slot(pick_number, draft.num_teams)


def is_draft_complete(current_pick: int, total_picks: int) -> bool:
    """
    Check if draft is complete.

    Args:
        current_pick: Overall number of the next pick
        total_picks: Total number of picks in draft

    Returns:
        True if every pick has been made
    """
    return current_pick > total_picks

