"""
Business logic services for the Draft Assistant

Service layer for drafts, picks, the player catalog and recommendations.
"""

from .player_service import PlayerService, player_service
from .draft_service import DraftService, draft_service
from .draft_pick_service import DraftPickService, draft_pick_service
from .recommendation_service import RecommendationService, recommendation_service
from .roster_service import analyze_roster, ideal_composition_for

# Wire services together so every engine shares one set of instances
draft_pick_service.draft_service = draft_service
draft_pick_service.player_service = player_service

__all__ = [
    'PlayerService', 'player_service',
    'DraftService', 'draft_service',
    'DraftPickService', 'draft_pick_service',
    'RecommendationService', 'recommendation_service',
    'analyze_roster', 'ideal_composition_for',
]
