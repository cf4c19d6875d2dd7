"""
Recommendation service for the Draft Assistant

Builds a bounded prompt from draft and roster state, asks the configured
generation provider for picks, and maps its untrusted answer back onto real
available players. Any provider trouble (no provider, rate budget spent,
timeout, error, unusable output) ends in a deterministic ADP ranking instead.
"""
import asyncio
import json
import logging
import re
from typing import Awaitable, Callable, Dict, Iterable, List, NamedTuple, Optional

from pydantic import ValidationError

from api.client import GenerationClient, get_global_client
from config import get_config
from constants import (
    DEFAULT_PROVIDER_SCORE,
    DEFAULT_PROVIDER_STRATEGY,
    FALLBACK_BEST_REASONING,
    FALLBACK_STRATEGY,
    FALLBACK_VALUE_REASONING,
    TAG_BEST_AVAILABLE,
    TAG_VALUE_PICK,
)
from exceptions import InvalidInputError, ProviderUnavailableError, RateLimitExceededError
from models.player import Player
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
from services.draft_pick_service import DraftPickService, draft_pick_service as default_draft_pick_service
from services.player_service import PlayerService, player_service as default_player_service
from services.roster_service import analyze_roster, ideal_composition_for
from utils.decorators import logged_operation
from utils.rate_limit import RateLimiter, get_ai_rate_limiter

logger = logging.getLogger(f'{__name__}.RecommendationService')

SPORT_LABELS = {
    'NBA': 'basketball',
    'NFL': 'football',
    'MLB': 'baseball',
}

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


class ParsedRecommendations(NamedTuple):
    recommendations: List[PlayerRecommendation]
    strategy: str


def available_players(context: DraftContext) -> List[Player]:
    """Sport players not yet drafted, in catalog order."""
    drafted = {pick.player_id for pick in context.picks}
    return [p for p in context.sport_players if p.id not in drafted]


def select_candidates(available: Iterable[Player], limit: int) -> List[Player]:
    """
    Pick the prompt candidates: ascending ADP, unranked players last.

    The sort is stable, so players with equal ADP keep catalog order.
    """
    ranked = sorted(available, key=lambda p: (p.adp is None, p.adp if p.adp is not None else 0))
    return ranked[:limit]


def build_prompt(context: DraftContext, analysis: RosterAnalysis, candidates: List[Player],
                 limit: int) -> str:
    """Render the provider prompt for one recommendation request."""
    draft = context.draft
    sport_label = SPORT_LABELS.get(draft.sport, 'sports')

    if context.user_roster:
        roster_lines = '\n'.join(
            f"- {p.full_name} ({p.primary_position}) - {p.team or 'FA'}" for p in context.user_roster
        )
    else:
        roster_lines = '- No players drafted yet'

    candidate_lines = '\n'.join(
        f"{i}. {p.full_name} ({p.primary_position}) - {p.team or 'FA'} - ADP: {p.adp_display}"
        for i, p in enumerate(candidates, start=1)
    )

    return f"""You are an expert {draft.sport} fantasy {sport_label} analyst. Analyze this draft situation and recommend the best picks.

DRAFT CONTEXT:
- Sport: {draft.sport}
- Draft Type: {draft.draft_type}
- Teams: {draft.num_teams}
- User's Draft Position: {context.user_team_number}
- Current Overall Pick: {context.current_pick}
- Scoring Type: {draft.scoring_type}

USER'S CURRENT ROSTER ({len(context.user_roster)} players):
{roster_lines}

ROSTER ANALYSIS:
- Strengths: {', '.join(analysis.strengths) or 'None yet'}
- Needs: {', '.join(analysis.needs)}

TOP {len(candidates)} AVAILABLE PLAYERS (sorted by ADP):
{candidate_lines}

TASK:
Recommend the TOP {limit} best players to draft right now, chosen only from the list above. Consider:
1. Best Player Available (BPA) strategy
2. Positional needs and roster construction
3. Value relative to ADP (is anyone falling?)
4. Late-round strategy if applicable

For each recommendation, provide:
- Player name, position and team exactly as listed
- A brief reasoning (1-2 sentences)
- Confidence score (0-100)
- Tags: "best available", "positional need", "value pick", "sleeper", "safe floor", "high ceiling"

Respond in JSON format only:
{{
  "recommendations": [
    {{
      "playerName": "Player Name",
      "position": "PG",
      "team": "BOS",
      "reasoning": "Brief explanation",
      "score": 85,
      "tags": ["best available", "positional need"]
    }}
  ],
  "strategy": "One sentence overall strategy recommendation",
  "rosterNeeds": ["PG", "C"]
}}"""


class PlayerMatcher:
    """
    Resolve provider-supplied names to available players.

    Passes, first hit wins: exact name with matching team, then a unique exact
    name, then a unique case-insensitive substring match in either direction.
    More than one candidate at the deciding pass means no match.
    """

    def __init__(self, players: Iterable[Player]):
        self.players = list(players)
        self._by_name: Dict[str, List[Player]] = {}
        for player in self.players:
            self._by_name.setdefault(self._normalize(player.full_name), []).append(player)

    @staticmethod
    def _normalize(value: Optional[str]) -> str:
        return ' '.join((value or '').split()).casefold()

    def match(self, name: str, team: Optional[str] = None) -> Optional[Player]:
        needle = self._normalize(name)
        if not needle:
            return None

        exact = self._by_name.get(needle, [])
        if team:
            wanted_team = self._normalize(team)
            same_team = [p for p in exact if self._normalize(p.team) == wanted_team]
            if len(same_team) == 1:
                return same_team[0]

        if len(exact) == 1:
            return exact[0]
        if len(exact) > 1:
            logger.debug(f"Ambiguous provider name '{name}' ({len(exact)} exact matches)")
            return None

        partial = [
            p for p in self.players
            if needle in self._normalize(p.full_name) or self._normalize(p.full_name) in needle
        ]
        if len(partial) == 1:
            return partial[0]
        if partial:
            logger.debug(f"Ambiguous provider name '{name}' ({len(partial)} partial matches)")
        return None


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text itself."""
    match = _CODE_FENCE.search(text)
    return (match.group(1) if match else text).strip()


def parse_provider_response(text: str, available: Iterable[Player], limit: int) -> ParsedRecommendations:
    """
    Turn raw provider text into recommendations for real available players.

    Nothing in the text is trusted. The payload must pass the strict provider
    schema; each item is then validated on its own so one bad item only costs
    that item. Unresolvable, ambiguous and repeated players are dropped.

    Args:
        text: Raw provider output
        available: The undrafted player pool
        limit: Maximum recommendations to keep

    Returns:
        ParsedRecommendations (recommendations may be empty)
    """
    try:
        payload = json.loads(strip_code_fences(text))
        response = ProviderResponse.model_validate(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Provider returned invalid JSON: {e}")
        return ParsedRecommendations([], DEFAULT_PROVIDER_STRATEGY)
    except ValidationError as e:
        logger.warning(f"Provider payload failed validation: {e.error_count()} errors")
        return ParsedRecommendations([], DEFAULT_PROVIDER_STRATEGY)

    matcher = PlayerMatcher(available)
    recommendations: List[PlayerRecommendation] = []
    seen = set()

    for raw in response.recommendations:
        if len(recommendations) >= limit:
            break

        try:
            item = ProviderRecommendation.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Dropping malformed provider item: {e.error_count()} errors")
            continue

        player = matcher.match(item.player_name, item.team)
        if player is None:
            logger.debug(f"Dropping unmatched provider pick '{item.player_name}'")
            continue
        if player.id in seen:
            continue
        seen.add(player.id)

        recommendations.append(PlayerRecommendation(
            player_id=player.id,
            player_name=player.full_name,
            position=player.primary_position,
            team=player.team,
            reasoning=item.reasoning.strip(),
            score=item.score if item.score is not None else DEFAULT_PROVIDER_SCORE,
            tags=item.tags,
        ))

    strategy = (response.strategy or '').strip() or DEFAULT_PROVIDER_STRATEGY
    return ParsedRecommendations(recommendations, strategy)


def fallback_recommendations(
    available: Iterable[Player],
    current_pick: int,
    limit: int,
    base_score: int = 80,
    score_step: int = 5
) -> List[PlayerRecommendation]:
    """
    Rank the best available players by ADP without a provider.

    Players without an ADP are left out. Deterministic for a given pool.

    Examples:
        Pool with ADPs 1..6, limit 5 -> ADPs 1..5 scored 80, 75, 70, 65, 60
    """
    ranked = select_candidates([p for p in available if p.adp is not None], limit)

    recommendations = []
    for index, player in enumerate(ranked):
        best = index == 0
        recommendations.append(PlayerRecommendation(
            player_id=player.id,
            player_name=player.full_name,
            position=player.primary_position,
            team=player.team,
            reasoning=FALLBACK_BEST_REASONING if best else FALLBACK_VALUE_REASONING.format(pick=current_pick),
            score=max(0, min(100, base_score - index * score_step)),
            tags=[TAG_BEST_AVAILABLE if best else TAG_VALUE_PICK],
        ))
    return recommendations


class RecommendationService:
    """
    Service producing ranked pick suggestions for one seat.

    Never mutates draft state and never surfaces a provider failure: those end
    in the ADP fallback. Caller cancellation propagates as CancelledError
    without running the fallback.
    """

    def __init__(
        self,
        draft_pick_service: Optional[DraftPickService] = None,
        player_service: Optional[PlayerService] = None,
        client_factory: Callable[[], Optional[GenerationClient]] = get_global_client,
        rate_limiter_factory: Callable[[], Awaitable[RateLimiter]] = get_ai_rate_limiter
    ):
        """
        Initialize recommendation service.

        Args:
            draft_pick_service: Pick history source (global instance by default)
            player_service: Player pool source (global instance by default)
            client_factory: Returns the generation client, or None when no
                provider is configured
            rate_limiter_factory: Async callable returning the provider rate limiter
        """
        self.draft_pick_service = draft_pick_service or default_draft_pick_service
        self.player_service = player_service or default_player_service
        self._client_factory = client_factory
        self._rate_limiter_factory = rate_limiter_factory
        logger.debug("RecommendationService initialized")

    @logged_operation("get_recommendations")
    async def get_recommendations(
        self,
        draft_id: str,
        user_id: Optional[str] = None,
        team_number: Optional[int] = None
    ) -> RecommendationsResult:
        """
        Recommend picks for a seat in a draft.

        Draft, pick history and player pool are read in one transaction so the
        context is a consistent snapshot.

        Args:
            draft_id: Draft to advise on
            user_id: Restrict to drafts owned by this user; also the rate budget key
            team_number: Seat to advise (defaults to the operating user's seat)

        Returns:
            RecommendationsResult

        Raises:
            DraftNotFoundError: Unknown draft (or not owned by user_id)
            InvalidInputError: Seat out of range or no available players
        """
        picks_service = self.draft_pick_service
        async with picks_service.transaction() as session:
            draft = await picks_service.draft_service.get_draft(draft_id, user_id=user_id, session=session)
            seat_number = team_number if team_number is not None else draft.draft_position
            if not 1 <= seat_number <= draft.num_teams:
                raise InvalidInputError(f"Team number {seat_number} is outside 1..{draft.num_teams}")

            picks = await picks_service.get_picks(draft_id, session=session)
            sport_players = await self.player_service.get_players_for_sport(draft.sport, session=session)

        context = DraftContext(
            draft=draft,
            picks=picks,
            sport_players=sport_players,
            user_roster=[p.player for p in picks if p.team_number == seat_number and p.player is not None],
            current_pick=draft.current_pick,
            user_team_number=seat_number,
        )
        return await self.recommend(context, rate_key=user_id or draft.user_id)

    async def recommend(self, context: DraftContext, rate_key: Optional[str] = None) -> RecommendationsResult:
        """
        Produce recommendations from an already-loaded draft context.

        Args:
            context: Draft snapshot
            rate_key: Rate budget identifier (defaults to the draft owner)

        Returns:
            RecommendationsResult from the provider, or the ADP fallback

        Raises:
            InvalidInputError: Seat out of range or no available players
        """
        config = get_config()
        draft = context.draft

        if context.user_team_number > draft.num_teams:
            raise InvalidInputError(
                f"Team number {context.user_team_number} is outside 1..{draft.num_teams}"
            )

        available = available_players(context)
        if not available:
            raise InvalidInputError(f"No available {draft.sport} players to recommend")

        analysis = analyze_roster(context.user_roster, ideal_composition_for(draft.sport))
        limit = config.recommendation_limit

        parsed = None
        text = await self._ask_provider(context, analysis, available, rate_key or draft.user_id)
        if text is not None:
            parsed = parse_provider_response(text, available, limit)
            if not parsed.recommendations:
                logger.warning("Provider answer had no usable recommendations - using ADP fallback")
                parsed = None

        if parsed is not None:
            source = RecommendationSource.PROVIDER
            recommendations, strategy = parsed
        else:
            source = RecommendationSource.FALLBACK
            recommendations = fallback_recommendations(
                available, context.current_pick, limit,
                base_score=config.fallback_base_score,
                score_step=config.fallback_score_step,
            )
            strategy = FALLBACK_STRATEGY

        logger.info(
            f"{len(recommendations)} {source.value} recommendations for draft {draft.id} "
            f"pick {context.current_pick} (team {context.user_team_number})"
        )
        return RecommendationsResult(
            recommendations=recommendations,
            strategy=strategy,
            roster_analysis=analysis,
            source=source,
            draft_context=DraftContextSummary(
                current_pick=context.current_pick,
                user_roster_size=len(context.user_roster),
                available_players_count=len(available),
            ),
        )

    async def _ask_provider(
        self,
        context: DraftContext,
        analysis: RosterAnalysis,
        available: List[Player],
        rate_key: str
    ) -> Optional[str]:
        """
        Call the provider within the rate budget and the configured timeout.

        Returns:
            Raw provider text, or None when the fallback should be used
        """
        config = get_config()

        client = self._client_factory()
        if client is None:
            logger.info("No generation provider configured - using ADP fallback")
            return None

        try:
            limiter = await self._rate_limiter_factory()
            await limiter.hit(rate_key)
        except RateLimitExceededError as e:
            logger.warning(f"Provider rate budget exhausted for {rate_key} (retry in {e.retry_after}s)")
            return None
        except Exception as e:
            logger.error(f"Rate limiter unavailable: {e} - using ADP fallback", exc_info=True)
            return None

        candidates = select_candidates(available, config.recommendation_candidate_limit)
        prompt = build_prompt(context, analysis, candidates, config.recommendation_limit)
        timeout = config.ai_timeout_seconds

        try:
            return await asyncio.wait_for(
                client.generate(prompt, config.ai_max_tokens, config.ai_temperature, timeout),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Provider did not answer within {timeout}s - using ADP fallback")
        except ProviderUnavailableError as e:
            logger.warning(f"Provider unavailable: {e} - using ADP fallback")
        except Exception as e:
            logger.error(f"Unexpected provider failure: {e} - using ADP fallback", exc_info=True)
        return None


# Global service instance
recommendation_service = RecommendationService()
