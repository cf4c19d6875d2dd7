"""
Data models for the Draft Assistant

Pydantic models with validation and type safety.
"""

from models.base import DraftBaseModel
from models.draft import Draft, DraftStatus, DraftType, ScoringType, Sport
from models.player import Player, PlayerPage
from models.draft_pick import DraftPick, PickResult, UndoResult
from models.recommendation import (
    DraftContext,
    DraftContextSummary,
    PlayerRecommendation,
    ProviderRecommendation,
    ProviderResponse,
    RecommendationSource,
    RecommendationsResult,
    RosterAnalysis,
)

__all__ = [
    'DraftBaseModel',
    'Draft',
    'DraftStatus',
    'DraftType',
    'ScoringType',
    'Sport',
    'Player',
    'PlayerPage',
    'DraftPick',
    'PickResult',
    'UndoResult',
    'DraftContext',
    'DraftContextSummary',
    'PlayerRecommendation',
    'ProviderRecommendation',
    'ProviderResponse',
    'RecommendationSource',
    'RecommendationsResult',
    'RosterAnalysis',
]
