"""
Recommendation models

Derived, never persisted. Also holds the strict schema that generation
provider output must satisfy before any of it is trusted.
"""
from enum import Enum
import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from constants import RECOMMENDATION_TAGS
from models.draft import Draft
from models.draft_pick import DraftPick
from models.player import Player


class RosterAnalysis(BaseModel):
    """Positional strengths and needs of one team's roster."""

    strengths: List[str] = Field(default_factory=list)
    needs: List[str] = Field(default_factory=list)


class PlayerRecommendation(BaseModel):
    """A ranked suggestion for the requesting seat's next pick."""

    player_id: str
    player_name: str
    position: str
    team: Optional[str] = None
    reasoning: str
    score: int = Field(..., ge=0, le=100, description="Confidence score")
    tags: List[str] = Field(default_factory=list)


class RecommendationSource(str, Enum):
    PROVIDER = "provider"
    FALLBACK = "fallback"


class DraftContextSummary(BaseModel):
    current_pick: int
    user_roster_size: int
    available_players_count: int


class RecommendationsResult(BaseModel):
    """Everything returned to the caller for one recommendation request."""

    model_config = ConfigDict(use_enum_values=True)

    recommendations: List[PlayerRecommendation] = Field(default_factory=list)
    strategy: str
    roster_analysis: RosterAnalysis
    source: RecommendationSource
    draft_context: Optional[DraftContextSummary] = None


class DraftContext(BaseModel):
    """Read-only snapshot of draft state handed to the recommendation engine."""

    draft: Draft
    picks: List[DraftPick] = Field(default_factory=list)
    sport_players: List[Player] = Field(default_factory=list)
    user_roster: List[Player] = Field(default_factory=list)
    current_pick: int = Field(..., ge=1)
    user_team_number: int = Field(..., ge=1)


# =============================================================================
# Provider output schema
# =============================================================================

class ProviderRecommendation(BaseModel):
    """One item of generation provider output. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    player_name: str = Field(..., alias="playerName", min_length=1, max_length=120)
    # Display and tie-break hints only; verbose forms like "Point Guard" are fine
    position: Optional[str] = None
    team: Optional[str] = None
    reasoning: str = Field(..., min_length=1, max_length=1000)
    score: Optional[int] = Field(None, ge=0, le=100)
    tags: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def round_fractional_score(cls, v):
        """Round fractional scores such as 87.5 to the nearest whole point."""
        if isinstance(v, float) and math.isfinite(v):
            return round(v)
        return v

    @field_validator("tags")
    @classmethod
    def keep_known_tags(cls, v: List[str]) -> List[str]:
        """Drop labels outside the fixed vocabulary, preserving order."""
        tags = []
        for tag in v:
            normalized = tag.strip().lower()
            if normalized in RECOMMENDATION_TAGS and normalized not in tags:
                tags.append(normalized)
        return tags


class ProviderResponse(BaseModel):
    """
    Top-level provider payload.

    Items are kept as raw objects here and validated one at a time so that a
    single malformed item is dropped instead of discarding the whole answer.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    recommendations: List[dict] = Field(default_factory=list)
    strategy: Optional[str] = Field(None, max_length=500)
    roster_needs: List[str] = Field(default_factory=list, alias="rosterNeeds")
