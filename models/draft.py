"""
Draft configuration and state model

Represents one draft's setup and its pick progression.
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, field_validator, model_validator

from constants import (
    MIN_TEAMS, MAX_TEAMS, MIN_ROSTER_SIZE, MAX_ROSTER_SIZE,
    MAX_LEAGUE_NAME_LENGTH, DEFAULT_NUM_TEAMS, DEFAULT_DRAFT_POSITION,
    DEFAULT_ROSTER_SIZE,
)
from models.base import DraftBaseModel


class Sport(str, Enum):
    NBA = "NBA"
    NFL = "NFL"
    MLB = "MLB"


class DraftType(str, Enum):
    SNAKE = "snake"
    AUCTION = "auction"
    LINEAR = "linear"


class ScoringType(str, Enum):
    STANDARD = "standard"
    PPR = "ppr"
    HALF_PPR = "half_ppr"
    POINTS = "points"
    CATEGORIES = "categories"


class DraftStatus(str, Enum):
    SETUP = "setup"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


TERMINAL_STATUSES = {DraftStatus.COMPLETED.value, DraftStatus.ABANDONED.value}


class Draft(DraftBaseModel):
    """Draft configuration and state model."""

    user_id: str = Field(..., description="Owning user (opaque identity)")
    sport: Sport = Field(Sport.NBA, description="League type")
    draft_type: DraftType = Field(DraftType.SNAKE, description="Pick order rule")
    league_name: Optional[str] = Field(None, max_length=MAX_LEAGUE_NAME_LENGTH)
    num_teams: int = Field(DEFAULT_NUM_TEAMS, ge=MIN_TEAMS, le=MAX_TEAMS)
    draft_position: int = Field(DEFAULT_DRAFT_POSITION, ge=1, le=MAX_TEAMS,
                                description="The operating user's seat")
    scoring_type: ScoringType = Field(ScoringType.POINTS)
    roster_size: int = Field(DEFAULT_ROSTER_SIZE, ge=MIN_ROSTER_SIZE, le=MAX_ROSTER_SIZE)
    current_round: int = Field(1, ge=1, description="Round of the next pick")
    current_pick: int = Field(1, ge=1, description="Overall number of the next pick")
    status: DraftStatus = Field(DraftStatus.SETUP)
    settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("settings", mode="before")
    @classmethod
    def default_settings(cls, v):
        """Database stores an absent settings bag as NULL."""
        return {} if v is None else v

    @model_validator(mode="after")
    def check_draft_position(self):
        if self.draft_position > self.num_teams:
            raise ValueError(
                f"draft_position {self.draft_position} exceeds num_teams {self.num_teams}"
            )
        return self

    @property
    def total_picks(self) -> int:
        """Total picks in the draft (derived value)."""
        return self.num_teams * self.roster_size

    @property
    def picks_made(self) -> int:
        return self.current_pick - 1

    @property
    def is_terminal(self) -> bool:
        """Check if the draft has reached a state no operation can leave."""
        return self.status in TERMINAL_STATUSES

    def __str__(self):
        return (
            f"{self.sport} {self.draft_type} draft ({self.num_teams} teams, "
            f"seat {self.draft_position}): pick {self.current_pick}/{self.total_picks} [{self.status}]"
        )
