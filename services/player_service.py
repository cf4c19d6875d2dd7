"""
Player catalog service for the Draft Assistant

Read-only view of the players available to a sport. Player rows are written
by the feed ingestion collaborator; ``add_players`` exists for that
collaborator and for seeding.
"""
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import String, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from db.tables import players
from exceptions import InvalidInputError, PlayerNotFoundError
from models.draft import Sport
from models.player import Player, PlayerPage
from services.base_service import BaseService

logger = logging.getLogger(f'{__name__}.PlayerService')

SORT_COLUMNS = {
    'adp': players.c.adp,
    'full_name': players.c.full_name,
    'team': players.c.team,
    'position': players.c.position,
}


class PlayerService(BaseService[Player]):
    """
    Service for player catalog lookups.

    Features:
    - Player lookup by ID and by ID set
    - Whole-sport pool with optional exclusion set
    - Filtered, sorted, paged search
    """

    def __init__(self, session_factory=None):
        """Initialize player service."""
        super().__init__(Player, players, session_factory)
        logger.debug("PlayerService initialized")

    async def get_player(self, player_id: str, session: Optional[AsyncSession] = None) -> Player:
        """
        Get a player by ID.

        Raises:
            PlayerNotFoundError: If no such player exists
        """
        player = await self.get_by_id(player_id, session=session)
        if player is None:
            raise PlayerNotFoundError(f"Player {player_id} not found")
        return player

    async def get_players_by_ids(
        self,
        player_ids: Iterable[str],
        session: Optional[AsyncSession] = None
    ) -> List[Player]:
        """Get every player whose ID is in the given set (unknown IDs are skipped)."""
        ids = list(set(player_ids))
        if not ids:
            return []
        query = select(players).where(players.c.id.in_(ids))
        return await self._fetch_all(query, session=session)

    async def get_players_for_sport(
        self,
        sport: Sport,
        exclude_ids: Optional[Iterable[str]] = None,
        session: Optional[AsyncSession] = None
    ) -> List[Player]:
        """
        Get the full player pool for a sport, minus excluded IDs.

        Exclusion is a set membership test per player, so the cost is linear
        in the pool size regardless of how many players were drafted.

        Args:
            sport: League type
            exclude_ids: Player IDs to leave out (e.g. already drafted)

        Returns:
            Players ordered by ascending ADP, unranked players last
        """
        sport_value = sport.value if isinstance(sport, Sport) else sport
        query = (
            select(players)
            .where(players.c.sport == sport_value)
            .order_by(players.c.adp.is_(None), players.c.adp, players.c.full_name)
        )
        pool = await self._fetch_all(query, session=session)

        excluded = set(exclude_ids or ())
        if excluded:
            pool = [p for p in pool if p.id not in excluded]

        logger.debug(f"{len(pool)} {sport_value} players in pool ({len(excluded)} excluded)")
        return pool

    async def search_players(
        self,
        sport: Sport = Sport.NBA,
        search: Optional[str] = None,
        position: Optional[str] = None,
        team: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        sort_by: str = 'adp',
        sort_order: str = 'asc'
    ) -> PlayerPage:
        """
        Search and filter the catalog.

        Args:
            sport: League type
            search: Case-insensitive name substring
            position: Primary or eligible position
            team: Team abbreviation
            page: 1-based page number (clamped to >= 1)
            limit: Page size (clamped to 1..100)
            sort_by: adp, full_name, team or position
            sort_order: asc or desc (ADP sorts keep unranked players last)

        Returns:
            PlayerPage with the players and total match count
        """
        if sort_by not in SORT_COLUMNS:
            raise InvalidInputError(f"Cannot sort players by '{sort_by}'")
        if sort_order not in ('asc', 'desc'):
            raise InvalidInputError(f"Sort order must be 'asc' or 'desc', got '{sort_order}'")

        page = max(1, page)
        limit = min(MAX_PAGE_SIZE, max(1, limit))
        sport_value = sport.value if isinstance(sport, Sport) else str(sport).upper()

        conditions = [players.c.sport == sport_value]
        if search and search.strip():
            conditions.append(func.lower(players.c.full_name).contains(search.strip().lower()))
        if position:
            position = position.upper()
            conditions.append(
                (players.c.position == position)
                | players.c.positions.cast(String).like(f'%"{position}"%')
            )
        if team:
            conditions.append(players.c.team == team.upper())

        column = SORT_COLUMNS[sort_by]
        ordering = column.desc() if sort_order == 'desc' else column.asc()
        order_by = [column.is_(None), ordering] if sort_by == 'adp' else [ordering]

        query = (
            select(players)
            .where(*conditions)
            .order_by(*order_by)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        count_query = select(func.count()).select_from(players).where(*conditions)

        async with self.transaction() as session:
            results = await self._fetch_all(query, session=session)
            total_count = (await session.execute(count_query)).scalar_one()

        logger.debug(f"Player search matched {total_count} (page {page}, limit {limit})")
        return PlayerPage(players=results, page=page, limit=limit, total_count=total_count)

    async def add_players(self, new_players: Sequence[Player]) -> List[Player]:
        """
        Insert catalog players.

        Returns:
            The stored players
        """
        stored = list(new_players)
        if not stored:
            return []

        rows = [
            p.model_dump(include={'id', 'sport', 'full_name', 'team', 'position', 'positions', 'adp'})
            for p in stored
        ]
        async with self.transaction() as session:
            await session.execute(insert(players), rows)

        logger.info(f"Added {len(stored)} players to the catalog")
        return stored


# Global service instance
player_service = PlayerService()
