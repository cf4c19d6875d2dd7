"""
Draft pick service for the Draft Assistant

The draft turn engine: records picks and undoes them. Every pick and every
undo is one transaction, and the draft row is advanced with a compare-and-set
on ``current_pick`` so two writers can never both move the same draft.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.tables import draft_picks, drafts
from exceptions import (
    AlreadyDraftedError,
    ConflictError,
    DraftCompleteError,
    ForbiddenUndoError,
    InvalidInputError,
    NoPicksToUndoError,
    OutOfTurnError,
)
from models.draft import Draft, DraftStatus
from models.draft_pick import DraftPick, PickResult, UndoResult
from models.player import Player
from services.base_service import BaseService, new_id
from services.draft_service import DraftService
from services.player_service import PlayerService
from utils.decorators import logged_operation
from utils.draft_helpers import get_pick_order, is_draft_complete, round_and_position, seat

logger = logging.getLogger(f'{__name__}.DraftPickService')


class DraftPickService(BaseService[DraftPick]):
    """
    Service for recording and undoing draft picks.

    IMPORTANT: Nothing here is cached. Draft state changes on every pick, so
    every check reads the current rows inside the writing transaction.

    Features:
    - Record a pick with turn, slot and duplicate validation
    - Undo the most recent pick (operating user's own picks only)
    - Pick history with players resolved
    - One seat's roster in pick order
    """

    def __init__(self, session_factory=None,
                 draft_service: Optional[DraftService] = None,
                 player_service: Optional[PlayerService] = None):
        """Initialize draft pick service."""
        super().__init__(DraftPick, draft_picks, session_factory)
        self.draft_service = draft_service or DraftService(session_factory)
        self.player_service = player_service or PlayerService(session_factory)
        logger.debug("DraftPickService initialized")

    @logged_operation("make_pick")
    async def make_pick(
        self,
        draft_id: str,
        player_id: str,
        team_number: int,
        round: Optional[int] = None,
        pick_number: Optional[int] = None,
        pick_in_round: Optional[int] = None,
        is_user_pick: Optional[bool] = None,
        user_id: Optional[str] = None
    ) -> PickResult:
        """
        Record a pick and advance the draft.

        Args:
            draft_id: Draft to pick in
            player_id: Player being selected
            team_number: Seat making the selection
            round: Round of the pick (derived from pick_number when omitted)
            pick_number: Overall pick number; must equal the draft's current pick
                (defaults to it)
            pick_in_round: Position within the round (derived when omitted)
            is_user_pick: Whether the operating user made the pick. Always
                derived from the seat; a contradicting value is rejected.
            user_id: Restrict to drafts owned by this user

        Returns:
            PickResult with the stored pick and the advanced draft

        Raises:
            DraftNotFoundError: Unknown draft (or not owned by user_id)
            DraftCompleteError: Draft is completed or abandoned
            PlayerNotFoundError: Unknown player
            AlreadyDraftedError: Player already taken in this draft
            ConflictError: pick_number is not the current pick, or a concurrent
                writer advanced the draft first
            OutOfTurnError: Seat does not own this pick (snake and linear)
            InvalidInputError: Seat out of range, wrong sport, or round and
                position inconsistent with the pick number
        """
        async with self.transaction() as session:
            draft = await self.draft_service.get_draft(draft_id, user_id=user_id, session=session)
            pick = await self._validate_pick(
                session, draft, player_id, team_number,
                round, pick_number, pick_in_round, is_user_pick
            )
            updated = await self._record_pick(session, draft, pick)

        logger.info(f"Draft {draft_id}: {pick}")
        if updated.status == DraftStatus.COMPLETED.value:
            logger.info(f"Draft {draft_id} completed after {pick.pick_number} picks")
        return PickResult(pick=pick, draft=updated)

    async def _validate_pick(
        self,
        session: AsyncSession,
        draft: Draft,
        player_id: str,
        team_number: int,
        round_num: Optional[int],
        pick_number: Optional[int],
        pick_in_round: Optional[int],
        is_user_pick: Optional[bool]
    ) -> DraftPick:
        """Run every pick check against current state and build the new row."""
        if draft.is_terminal:
            raise DraftCompleteError(f"Draft {draft.id} is {draft.status}")

        if not 1 <= team_number <= draft.num_teams:
            raise InvalidInputError(
                f"Team number {team_number} is outside 1..{draft.num_teams}"
            )

        player = await self.player_service.get_player(player_id, session=session)
        if player.sport != draft.sport:
            raise InvalidInputError(
                f"{player.full_name} is a {player.sport} player; this is a {draft.sport} draft"
            )

        taken = await session.execute(
            select(draft_picks.c.pick_number)
            .where(draft_picks.c.draft_id == draft.id, draft_picks.c.player_id == player_id)
        )
        taken_at = taken.scalar_one_or_none()
        if taken_at is not None:
            raise AlreadyDraftedError(f"{player.full_name} was already drafted at pick {taken_at}")

        if pick_number is None:
            pick_number = draft.current_pick
        if pick_number != draft.current_pick:
            raise ConflictError(
                f"Pick {pick_number} submitted but the draft is on pick {draft.current_pick}"
            )

        slot = seat(draft, pick_number)
        if get_pick_order(draft.draft_type).has_fixed_order:
            if slot.team_number != team_number:
                raise OutOfTurnError(
                    f"Pick {pick_number} belongs to team {slot.team_number}, not team {team_number}",
                    expected_team=slot.team_number,
                )
            if round_num is not None and round_num != slot.round:
                raise InvalidInputError(f"Pick {pick_number} is in round {slot.round}, not {round_num}")
            if pick_in_round is not None and pick_in_round != slot.pick_in_round:
                raise InvalidInputError(
                    f"Pick {pick_number} is pick {slot.pick_in_round} of its round, not {pick_in_round}"
                )

        # Auction keeps whatever round bookkeeping the caller supplies
        round_num = round_num if round_num is not None else slot.round
        pick_in_round = pick_in_round if pick_in_round is not None else slot.pick_in_round
        if round_num < 1 or pick_in_round < 1:
            raise InvalidInputError("Round and pick in round must be at least 1")

        own_seat = team_number == draft.draft_position
        if is_user_pick is not None and is_user_pick != own_seat:
            raise InvalidInputError(
                f"is_user_pick={is_user_pick} contradicts seat {team_number} "
                f"(user seat is {draft.draft_position})"
            )

        return DraftPick(
            id=new_id(),
            draft_id=draft.id,
            player_id=player_id,
            team_number=team_number,
            round=round_num,
            pick_number=pick_number,
            pick_in_round=pick_in_round,
            is_user_pick=own_seat,
            player=player,
        )

    async def _record_pick(self, session: AsyncSession, draft: Draft, pick: DraftPick) -> Draft:
        """
        Insert the pick and advance the draft as seen when it was read.

        Raises:
            ConflictError: Another writer took the slot, the player, or moved
                the draft since ``draft`` was read
        """
        await session.execute(
            insert(draft_picks).values(**pick.model_dump(exclude={'player', 'created_at', 'updated_at'}))
        )

        next_pick = pick.pick_number + 1
        next_round, _ = round_and_position(next_pick, draft.num_teams)
        if is_draft_complete(next_pick, draft.total_picks):
            status = DraftStatus.COMPLETED.value
        else:
            status = DraftStatus.IN_PROGRESS.value

        result = await session.execute(
            update(drafts)
            .where(
                drafts.c.id == draft.id,
                drafts.c.current_pick == pick.pick_number,
                drafts.c.status == draft.status,
            )
            .values(current_pick=next_pick, current_round=next_round, status=status)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Draft {draft.id} moved past pick {pick.pick_number} - refresh and retry")

        return await self.draft_service.get_by_id(draft.id, session=session)

    @logged_operation("undo_last_pick")
    async def undo_last_pick(
        self,
        draft_id: str,
        requester_team_number: int,
        user_id: Optional[str] = None
    ) -> UndoResult:
        """
        Remove the most recent pick and rewind the draft to it.

        Only the operating user's own most recent pick can be undone.

        Args:
            draft_id: Draft to rewind
            requester_team_number: Seat asking for the undo
            user_id: Restrict to drafts owned by this user

        Returns:
            UndoResult with the removed pick and the rewound draft

        Raises:
            DraftNotFoundError: Unknown draft (or not owned by user_id)
            DraftCompleteError: Draft is completed or abandoned
            NoPicksToUndoError: No picks recorded yet
            ForbiddenUndoError: Last pick was not the requester's own user pick
            ConflictError: A concurrent writer changed the draft first
        """
        async with self.transaction() as session:
            draft = await self.draft_service.get_draft(draft_id, user_id=user_id, session=session)
            if draft.is_terminal:
                raise DraftCompleteError(f"Draft {draft_id} is {draft.status}")

            row = (await session.execute(
                select(draft_picks)
                .where(draft_picks.c.draft_id == draft_id)
                .order_by(draft_picks.c.pick_number.desc())
                .limit(1)
            )).mappings().first()
            if row is None:
                raise NoPicksToUndoError(f"No picks to undo in draft {draft_id}")

            last = self._to_model(row)
            if not last.is_user_pick or last.team_number != requester_team_number:
                raise ForbiddenUndoError(
                    f"Pick {last.pick_number} was made by team {last.team_number}; "
                    f"only your own most recent pick can be undone"
                )

            await session.execute(delete(draft_picks).where(draft_picks.c.id == last.id))

            if last.pick_number == 1:
                status = DraftStatus.SETUP.value
            else:
                status = DraftStatus.IN_PROGRESS.value
            result = await session.execute(
                update(drafts)
                .where(drafts.c.id == draft_id, drafts.c.current_pick == last.pick_number + 1)
                .values(current_pick=last.pick_number, current_round=last.round, status=status)
            )
            if result.rowcount != 1:
                raise ConflictError(f"Draft {draft_id} changed while undoing - refresh and retry")

            last.player = await self.player_service.get_by_id(last.player_id, session=session)
            updated = await self.draft_service.get_by_id(draft_id, session=session)

        logger.info(f"Draft {draft_id}: undid {last}")
        return UndoResult(undone_pick=last, draft=updated)

    async def get_picks(
        self,
        draft_id: str,
        user_id: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> List[DraftPick]:
        """
        Get every pick of a draft in pick order, players resolved.

        Raises:
            DraftNotFoundError: Unknown draft (or not owned by user_id)
        """
        if session is None:
            async with self.transaction() as own_session:
                return await self.get_picks(draft_id, user_id=user_id, session=own_session)

        await self.draft_service.get_draft(draft_id, user_id=user_id, session=session)
        picks = await self._fetch_all(
            select(draft_picks)
            .where(draft_picks.c.draft_id == draft_id)
            .order_by(draft_picks.c.pick_number),
            session=session
        )

        players = await self.player_service.get_players_by_ids(
            (p.player_id for p in picks), session=session
        )
        by_id = {p.id: p for p in players}
        for pick in picks:
            pick.player = by_id.get(pick.player_id)

        logger.debug(f"Draft {draft_id}: {len(picks)} picks")
        return picks

    async def get_team_roster(
        self,
        draft_id: str,
        team_number: int,
        user_id: Optional[str] = None
    ) -> List[Player]:
        """Get the players one seat has drafted, in pick order."""
        picks = await self.get_picks(draft_id, user_id=user_id)
        return [p.player for p in picks if p.team_number == team_number and p.player is not None]


# Global service instance
draft_pick_service = DraftPickService()
