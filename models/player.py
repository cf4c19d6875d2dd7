"""
Player model for the player catalog

Player records are supplied by the catalog and treated as read-only.
"""
import math
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from constants import UNKNOWN_POSITION
from models.base import DraftBaseModel
from models.draft import Sport


class Player(DraftBaseModel):
    """Player model representing one catalog entry."""

    # Override base model to make id required for catalog entities
    id: str = Field(..., description="Player ID from the catalog")

    full_name: str = Field(..., description="Player full name")
    team: Optional[str] = Field(None, description="Team abbreviation")
    position: Optional[str] = Field(None, description="Primary position")
    positions: List[str] = Field(default_factory=list, description="Eligible positions")
    sport: Sport = Field(Sport.NBA)
    adp: Optional[int] = Field(None, description="Average draft position (lower is better)")

    @field_validator("positions", mode="before")
    @classmethod
    def default_positions(cls, v):
        """Database stores a missing positions list as NULL."""
        return [] if v is None else v

    @property
    def primary_position(self) -> str:
        """Return the player's primary position, or UTIL when unknown."""
        return self.position or UNKNOWN_POSITION

    @property
    def eligible_positions(self) -> List[str]:
        """Return every position this player can fill, primary first."""
        eligible = [self.position] if self.position else []
        for pos in self.positions:
            if pos not in eligible:
                eligible.append(pos)
        return eligible

    @property
    def adp_display(self) -> str:
        return str(self.adp) if self.adp is not None else "N/A"

    def __str__(self):
        return f"{self.full_name} ({self.primary_position})"


class PlayerPage(BaseModel):
    """One page of player search results."""

    players: List[Player] = Field(default_factory=list)
    page: int = 1
    limit: int
    total_count: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages
