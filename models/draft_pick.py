"""
Draft pick model

Represents one recorded selection in a draft.
"""
from typing import Optional

from pydantic import BaseModel, Field

from models.base import DraftBaseModel
from models.draft import Draft
from models.player import Player


class DraftPick(DraftBaseModel):
    """Draft pick model representing a single draft selection."""

    draft_id: str = Field(..., description="Owning draft")
    player_id: str = Field(..., description="Selected player")
    team_number: int = Field(..., ge=1, description="Seat that made the selection")
    round: int = Field(..., ge=1, description="Draft round")
    pick_number: int = Field(..., ge=1, description="Overall pick number")
    pick_in_round: int = Field(..., ge=1, description="Position within the round")
    is_user_pick: bool = Field(False, description="Made by the operating user's seat")

    # Populated when the pick is read together with its player
    player: Optional[Player] = Field(None, description="Selected player (populated when needed)")

    def __str__(self):
        who = self.player.full_name if self.player else self.player_id
        return f"Pick {self.pick_number} (R{self.round}.{self.pick_in_round}): {who} (Team {self.team_number})"


class PickResult(BaseModel):
    """Outcome of a recorded pick: the new row and the advanced draft."""

    pick: DraftPick
    draft: Draft


class UndoResult(BaseModel):
    """Outcome of an undo: the removed row and the rewound draft."""

    undone_pick: DraftPick
    draft: Draft
