"""
Pytest configuration and fixtures for Draft Assistant tests.

This file provides test isolation and shared fixtures.
"""
import os
from types import SimpleNamespace

import pytest
import pytest_asyncio

# Ensure environment is set up before any imports happen
# No provider keys: recommendation tests inject their own clients
os.environ["TESTING"] = "true"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["REDIS_URL"] = ""


@pytest.fixture(autouse=True)
def reset_singleton_state():
    """
    Reset any singleton/global state between tests.

    This prevents test pollution from global state in services.
    """
    yield  # Run test

    import config as cfg
    cfg._config = None

    import api.client as client_module
    client_module._global_client = None

    import utils.rate_limit as rate_limit_module
    rate_limit_module._ai_rate_limiter = None
    rate_limit_module._redis_client = None

    import db.session as session_module
    session_module._global_engine = None
    session_module._global_session_factory = None


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database per test with the full schema."""
    from db.session import create_engine, create_schema, create_session_factory

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'draft_assistant_test.db'}", echo=False)
    await create_schema(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def services(session_factory):
    """Service instances bound to the test database."""
    from services.draft_pick_service import DraftPickService
    from services.draft_service import DraftService
    from services.player_service import PlayerService

    players = PlayerService(session_factory)
    drafts = DraftService(session_factory)
    picks = DraftPickService(session_factory, draft_service=drafts, player_service=players)
    return SimpleNamespace(players=players, drafts=drafts, picks=picks)


@pytest_asyncio.fixture
async def nba_pool(services):
    """160 NBA players with ADP 1..160 stored in the catalog."""
    from tests.factories import PlayerFactory

    pool = PlayerFactory.pool(160)
    await services.players.add_players(pool)
    return pool
