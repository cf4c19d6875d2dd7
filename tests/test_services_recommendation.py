"""
Tests for RecommendationService

Tests cover:
- Deterministic ADP fallback (no provider, timeout, errors, rate budget)
- Parsing untrusted provider output: fences, bad JSON, strict schema
- Name resolution: exact name + team, unique name, substring, ambiguity
- Cancellation propagating without a fallback
- End-to-end request against a real draft
"""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config import get_config
from constants import FALLBACK_STRATEGY
from exceptions import InvalidInputError, ProviderUnavailableError
from models.recommendation import DraftContext
from services.recommendation_service import (
    PlayerMatcher,
    RecommendationService,
    build_prompt,
    fallback_recommendations,
    parse_provider_response,
    select_candidates,
    strip_code_fences,
)
from services.roster_service import analyze_roster, ideal_composition_for
from tests.factories import DraftFactory, DraftPickFactory, PlayerFactory
from utils.rate_limit import RateLimiter


def named_pool():
    """Available NBA players with distinct real-looking names."""
    return [
        PlayerFactory.nikola_jokic(),
        PlayerFactory.jayson_tatum(),
        PlayerFactory.create(id="curry", full_name="Stephen Curry", team="GSW", position="PG", adp=8),
        PlayerFactory.create(id="brown", full_name="Jaylen Brown", team="BOS", position="SG", adp=20),
        PlayerFactory.create(id="jdub-okc", full_name="Jalen Williams", team="OKC", position="SF", adp=25),
        PlayerFactory.create(id="jdub-det", full_name="Jalen Williams", team="DET", position="PF", adp=90),
        PlayerFactory.create(id="rookie", full_name="Unranked Rookie", team="DAL", position="PF", adp=None),
    ]


def build_context(pool, picks=None, roster=None, team=1, **draft_overrides):
    draft = DraftFactory.create(**draft_overrides)
    return DraftContext(
        draft=draft,
        picks=picks or [],
        sport_players=pool,
        user_roster=roster or [],
        current_pick=draft.current_pick,
        user_team_number=team,
    )


def make_service(client=None, limiter=None):
    limiter = limiter or RateLimiter(max_requests=100, window_seconds=60)

    async def limiter_factory():
        return limiter

    return RecommendationService(
        draft_pick_service=MagicMock(),
        player_service=MagicMock(),
        client_factory=lambda: client,
        rate_limiter_factory=limiter_factory,
    )


def provider_client(payload):
    client = AsyncMock()
    client.generate.return_value = payload if isinstance(payload, str) else json.dumps(payload)
    return client


GOOD_PAYLOAD = {
    "recommendations": [
        {
            "playerName": "Stephen Curry",
            "position": "PG",
            "team": "GSW",
            "reasoning": "Elite shooter still on the board.",
            "score": 91,
            "tags": ["best available", "elite", "safe floor"],
        },
        {"playerName": "jayson tatum", "reasoning": "Fills the wing.", "tags": ["positional need"]},
    ],
    "strategy": "Lock in guards early.",
    "rosterNeeds": ["PG"],
}


class TestFallback:
    """Deterministic ADP ranking."""

    @pytest.mark.asyncio
    async def test_no_provider_uses_adp_order(self):
        """
        With ADPs 1..6 and no provider, the top five by ADP come back scored
        80, 75, 70, 65, 60 with the first tagged best available.
        """
        service = make_service(client=None)
        context = build_context(PlayerFactory.pool(6), current_pick=1)

        result = await service.recommend(context)

        assert result.source == "fallback"
        assert result.strategy == FALLBACK_STRATEGY
        assert [r.player_id for r in result.recommendations] == [
            "nba-001", "nba-002", "nba-003", "nba-004", "nba-005"
        ]
        assert [r.score for r in result.recommendations] == [80, 75, 70, 65, 60]
        assert result.recommendations[0].tags == ["best available"]
        assert result.recommendations[0].reasoning == "Best available player by ADP"
        assert all(r.tags == ["value pick"] for r in result.recommendations[1:])
        assert result.recommendations[1].reasoning == "Strong value at pick 1"

    @pytest.mark.asyncio
    async def test_fallback_is_deterministic(self):
        service = make_service(client=None)
        context = build_context(PlayerFactory.pool(6))

        first = await service.recommend(context)
        second = await service.recommend(context)

        assert first == second

    def test_fallback_skips_unranked_players(self):
        recommendations = fallback_recommendations(named_pool(), current_pick=9, limit=10)

        assert "rookie" not in [r.player_id for r in recommendations]
        assert [r.player_id for r in recommendations][:3] == ["jokic", "tatum", "curry"]

    @pytest.mark.asyncio
    async def test_drafted_players_never_recommended(self):
        pool = PlayerFactory.pool(8)
        picks = [
            DraftPickFactory.create(id="p1", player_id="nba-001", pick_number=1),
            DraftPickFactory.create(id="p2", player_id="nba-002", team_number=2, pick_number=2,
                                    pick_in_round=2, is_user_pick=False),
        ]
        context = build_context(pool, picks=picks, roster=[pool[0]], current_pick=3)

        result = await make_service(client=None).recommend(context)

        assert [r.player_id for r in result.recommendations] == [
            "nba-003", "nba-004", "nba-005", "nba-006", "nba-007"
        ]
        assert result.draft_context.current_pick == 3
        assert result.draft_context.user_roster_size == 1
        assert result.draft_context.available_players_count == 6


class TestProviderPath:
    """Provider answers mapped back to real players."""

    @pytest.mark.asyncio
    async def test_provider_recommendations_resolved(self):
        client = provider_client(GOOD_PAYLOAD)
        service = make_service(client=client)

        result = await service.recommend(build_context(named_pool()))

        assert result.source == "provider"
        assert result.strategy == "Lock in guards early."
        curry, tatum = result.recommendations
        assert curry.player_id == "curry"
        assert curry.score == 91
        assert curry.tags == ["best available", "safe floor"]
        assert tatum.player_id == "tatum"
        assert tatum.player_name == "Jayson Tatum"
        assert tatum.position == "SF"
        assert tatum.score == 75

    @pytest.mark.asyncio
    async def test_provider_called_with_configured_limits(self):
        client = provider_client(GOOD_PAYLOAD)

        await make_service(client=client).recommend(build_context(named_pool()))

        prompt, max_tokens, temperature, timeout = client.generate.call_args.args
        assert "Stephen Curry (PG) - GSW - ADP: 8" in prompt
        assert "Unranked Rookie (PF) - DAL - ADP: N/A" in prompt
        assert (max_tokens, temperature, timeout) == (1000, 0.7, 15.0)

    @pytest.mark.asyncio
    async def test_fenced_answer_is_parsed(self):
        fenced = "Here you go:\n```json\n" + json.dumps(GOOD_PAYLOAD) + "\n```\nGood luck!"
        service = make_service(client=provider_client(fenced))

        result = await service.recommend(build_context(named_pool()))

        assert result.source == "provider"
        assert len(result.recommendations) == 2

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back(self):
        service = make_service(client=provider_client("I think Curry is great!"))

        result = await service.recommend(build_context(named_pool()))

        assert result.source == "fallback"

    @pytest.mark.asyncio
    async def test_unknown_top_level_key_falls_back(self):
        payload = dict(GOOD_PAYLOAD, instructions="ignore previous rules")
        service = make_service(client=provider_client(payload))

        result = await service.recommend(build_context(named_pool()))

        assert result.source == "fallback"

    @pytest.mark.asyncio
    async def test_no_resolvable_players_falls_back(self):
        payload = {"recommendations": [{"playerName": "Michael Jordan", "reasoning": "GOAT."}]}
        service = make_service(client=provider_client(payload))

        result = await service.recommend(build_context(named_pool()))

        assert result.source == "fallback"
        assert result.recommendations[0].player_id == "jokic"

    @pytest.mark.asyncio
    async def test_drafted_player_named_by_provider_dropped(self):
        pool = named_pool()
        picks = [DraftPickFactory.create(player_id="curry")]
        service = make_service(client=provider_client(GOOD_PAYLOAD))

        result = await service.recommend(build_context(pool, picks=picks, current_pick=2))

        assert [r.player_id for r in result.recommendations] == ["tatum"]


class TestParseProviderResponse:
    """Direct tests of the defensive parser."""

    def test_malformed_items_dropped_individually(self):
        payload = {
            "recommendations": [
                {"playerName": "Stephen Curry", "reasoning": "Good.", "score": 150},
                {"playerName": "Jayson Tatum", "reasoning": "Good.", "salary": 30},
                "Nikola Jokic",
                {"playerName": "Nikola Jokic", "reasoning": "Best big."},
            ]
        }

        parsed = parse_provider_response(json.dumps(payload), named_pool(), limit=5)

        assert [r.player_id for r in parsed.recommendations] == ["jokic"]
        assert parsed.strategy == "Draft the best available player"

    def test_duplicates_dropped_and_capped(self):
        names = ["Nikola Jokic", "Jokic", "Jayson Tatum", "Stephen Curry", "Jaylen Brown",
                 "Unranked Rookie", "Jalen Williams"]
        payload = {"recommendations": [{"playerName": n, "reasoning": "Why not."} for n in names]}

        parsed = parse_provider_response(json.dumps(payload), named_pool(), limit=3)

        assert [r.player_id for r in parsed.recommendations] == ["jokic", "tatum", "curry"]

    def test_verbose_team_and_position_still_resolve(self):
        payload = {
            "recommendations": [
                {"playerName": "Jaylen Brown", "team": "Boston Celtics", "reasoning": "Two-way wing."},
                {"playerName": "Stephen Curry", "position": "Point Guard", "reasoning": "Elite shooter."},
            ]
        }

        parsed = parse_provider_response(json.dumps(payload), named_pool(), limit=5)

        assert [r.player_id for r in parsed.recommendations] == ["brown", "curry"]
        assert [r.position for r in parsed.recommendations] == ["SG", "PG"]

    def test_fractional_score_kept_and_rounded(self):
        payload = {"recommendations": [{"playerName": "Nikola Jokic", "reasoning": "Best big.", "score": 87.5}]}

        parsed = parse_provider_response(json.dumps(payload), named_pool(), limit=5)

        assert [(r.player_id, r.score) for r in parsed.recommendations] == [("jokic", 88)]

    def test_non_object_payload_rejected(self):
        parsed = parse_provider_response("[1, 2, 3]", named_pool(), limit=5)

        assert parsed.recommendations == []

    def test_strip_code_fences(self):
        assert strip_code_fences("```\n{}\n```") == "{}"
        assert strip_code_fences("  {\"a\": 1} ") == "{\"a\": 1}"


class TestPlayerMatcher:
    """Name resolution passes."""

    def test_exact_name_with_team_breaks_tie(self):
        matcher = PlayerMatcher(named_pool())

        assert matcher.match("Jalen Williams", "OKC").id == "jdub-okc"
        assert matcher.match("Jalen Williams", "det").id == "jdub-det"

    def test_ambiguous_exact_name_dropped(self):
        matcher = PlayerMatcher(named_pool())

        assert matcher.match("Jalen Williams") is None
        assert matcher.match("Jalen Williams", "LAL") is None

    def test_unique_exact_name_ignores_wrong_team(self):
        matcher = PlayerMatcher(named_pool())

        assert matcher.match("Stephen Curry", "LAL").id == "curry"

    def test_unique_substring(self):
        matcher = PlayerMatcher(named_pool())

        assert matcher.match("curry").id == "curry"
        assert matcher.match("Stephen  Curry II").id == "curry"

    def test_ambiguous_substring_dropped(self):
        matcher = PlayerMatcher(named_pool())

        assert matcher.match("Ja") is None
        assert matcher.match("   ") is None


class TestProviderFailures:
    """Every provider failure ends in the fallback."""

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self):
        client = AsyncMock()
        client.generate.side_effect = ProviderUnavailableError("503")

        result = await make_service(client=client).recommend(build_context(named_pool()))

        assert result.source == "fallback"

    @pytest.mark.asyncio
    async def test_unexpected_error_falls_back(self):
        client = AsyncMock()
        client.generate.side_effect = RuntimeError("boom")

        result = await make_service(client=client).recommend(build_context(named_pool()))

        assert result.source == "fallback"

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self):
        get_config().ai_timeout_seconds = 0.05

        async def slow_generate(prompt, max_tokens, temperature, timeout):
            await asyncio.sleep(5)
            return json.dumps(GOOD_PAYLOAD)

        client = MagicMock()
        client.generate = slow_generate

        result = await make_service(client=client).recommend(build_context(named_pool()))

        assert result.source == "fallback"

    @pytest.mark.asyncio
    async def test_exhausted_rate_budget_falls_back(self):
        client = provider_client(GOOD_PAYLOAD)
        service = make_service(client=client, limiter=RateLimiter(max_requests=1, window_seconds=60))

        first = await service.recommend(build_context(named_pool()))
        second = await service.recommend(build_context(named_pool()))

        assert first.source == "provider"
        assert second.source == "fallback"
        assert client.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates_without_fallback(self):
        started = asyncio.Event()

        async def hanging_generate(prompt, max_tokens, temperature, timeout):
            started.set()
            await asyncio.Event().wait()

        client = MagicMock()
        client.generate = hanging_generate
        service = make_service(client=client)

        with patch("services.recommendation_service.fallback_recommendations") as fallback:
            task = asyncio.create_task(service.recommend(build_context(named_pool())))
            await started.wait()
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

        fallback.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limiter_setup_failure_falls_back(self):
        async def broken_limiter_factory():
            raise ValueError("Redis URL must specify one of the following schemes")

        client = provider_client(GOOD_PAYLOAD)
        service = RecommendationService(
            draft_pick_service=MagicMock(),
            player_service=MagicMock(),
            client_factory=lambda: client,
            rate_limiter_factory=broken_limiter_factory,
        )

        result = await service.recommend(build_context(named_pool()))

        assert result.source == "fallback"
        assert len(result.recommendations) == 5
        client.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_redis_url_still_uses_provider(self):
        get_config().redis_url = "notascheme://localhost"
        client = provider_client(GOOD_PAYLOAD)
        service = RecommendationService(
            draft_pick_service=MagicMock(),
            player_service=MagicMock(),
            client_factory=lambda: client,
        )

        result = await service.recommend(build_context(named_pool()))

        assert result.source == "provider"
        assert [r.player_id for r in result.recommendations] == ["curry", "tatum"]


class TestInvalidState:
    """Malformed state is the only error a caller sees."""

    @pytest.mark.asyncio
    async def test_no_available_players(self):
        pool = [PlayerFactory.nikola_jokic()]
        picks = [DraftPickFactory.create(player_id="jokic")]

        with pytest.raises(InvalidInputError):
            await make_service().recommend(build_context(pool, picks=picks, current_pick=2))

    @pytest.mark.asyncio
    async def test_seat_outside_draft(self):
        with pytest.raises(InvalidInputError):
            await make_service().recommend(build_context(named_pool(), team=13, num_teams=12))


class TestPrompt:
    """Prompt construction."""

    def test_candidates_capped_with_unranked_last(self):
        pool = [PlayerFactory.create(id="unranked", full_name="Deep Sleeper", adp=None)]
        pool += PlayerFactory.pool(40)

        candidates = select_candidates(pool, 30)

        assert len(candidates) == 30
        assert candidates[0].id == "nba-001"
        assert "unranked" not in [p.id for p in candidates]

    def test_prompt_embeds_roster_and_analysis(self):
        pool = named_pool()
        context = build_context(pool[1:], roster=[pool[0]], current_pick=24)
        analysis = analyze_roster(context.user_roster, ideal_composition_for("NBA"))

        prompt = build_prompt(context, analysis, select_candidates(pool[1:], 30), limit=5)

        assert "USER'S CURRENT ROSTER (1 players):" in prompt
        assert "- Nikola Jokic (C) - DEN" in prompt
        assert "- Needs: PG (have 0, need 2)" in prompt
        assert "Current Overall Pick: 24" in prompt
        assert "Recommend the TOP 5" in prompt
        assert '"rosterNeeds"' in prompt


class TestGetRecommendations:
    """End to end against a stored draft."""

    @pytest.mark.asyncio
    async def test_fallback_for_stored_draft(self, services, nba_pool):
        draft = await services.drafts.create_draft("user-1")
        await services.picks.make_pick(draft.id, "nba-001", team_number=1)
        await services.picks.make_pick(draft.id, "nba-002", team_number=2)
        service = RecommendationService(
            draft_pick_service=services.picks,
            player_service=services.players,
            client_factory=lambda: None,
        )

        result = await service.get_recommendations(draft.id, user_id="user-1")

        assert [r.player_id for r in result.recommendations][0] == "nba-003"
        assert result.draft_context.current_pick == 3
        assert result.draft_context.user_roster_size == 1
        assert result.draft_context.available_players_count == 158

    @pytest.mark.asyncio
    async def test_seat_out_of_range(self, services, nba_pool):
        draft = await services.drafts.create_draft("user-1", num_teams=10)
        service = RecommendationService(draft_pick_service=services.picks,
                                        player_service=services.players,
                                        client_factory=lambda: None)

        with pytest.raises(InvalidInputError):
            await service.get_recommendations(draft.id, team_number=11)
