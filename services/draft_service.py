"""
Draft service for the Draft Assistant

Draft setup and owner-level changes. Pick progression (current pick, round,
status transitions driven by picks) belongs to the draft pick service.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.tables import drafts
from exceptions import ConflictError, DraftCompleteError, DraftNotFoundError, InvalidInputError
from models.draft import Draft, DraftStatus
from services.base_service import BaseService, new_id
from utils.decorators import logged_operation

logger = logging.getLogger(f'{__name__}.DraftService')

# Fields the owner may change at any time before the draft ends
DESCRIPTIVE_FIELDS = {'league_name', 'scoring_type', 'settings'}
# Fields that shape pick order; frozen once the first pick is made
STRUCTURAL_FIELDS = {'sport', 'draft_type', 'num_teams', 'draft_position', 'roster_size'}


class DraftService(BaseService[Draft]):
    """
    Service for draft lifecycle operations outside of pick recording.

    Features:
    - Create a draft in ``setup``
    - Owner-scoped lookup and listing
    - Owner updates with structural fields frozen after the first pick
    - Abandon (terminal, owner action only)
    """

    def __init__(self, session_factory=None):
        """Initialize draft service."""
        super().__init__(Draft, drafts, session_factory)
        logger.debug("DraftService initialized")

    @logged_operation("create_draft")
    async def create_draft(self, user_id: str, **setup: Any) -> Draft:
        """
        Create a new draft.

        Args:
            user_id: Owning user
            **setup: sport, draft_type, league_name, num_teams, draft_position,
                scoring_type, roster_size, settings (defaults apply when omitted)

        Returns:
            The stored Draft in status ``setup`` at pick 1

        Raises:
            InvalidInputError: For out-of-range values or draft_position > num_teams
        """
        unknown = set(setup) - DESCRIPTIVE_FIELDS - STRUCTURAL_FIELDS
        if unknown:
            raise InvalidInputError(f"Unknown draft settings: {', '.join(sorted(unknown))}")

        try:
            draft = Draft(
                id=new_id(),
                user_id=user_id,
                status=DraftStatus.SETUP,
                current_round=1,
                current_pick=1,
                **setup
            )
        except ValidationError as e:
            raise InvalidInputError(f"Invalid draft setup: {e}") from e

        row = draft.model_dump(exclude={'created_at', 'updated_at'})
        async with self.transaction() as session:
            await session.execute(insert(drafts).values(**row))
            stored = await self.get_by_id(draft.id, session=session)

        logger.info(f"Created draft {stored.id}: {stored}")
        return stored

    async def get_draft(
        self,
        draft_id: str,
        user_id: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Draft:
        """
        Get a draft, optionally scoped to its owner.

        A draft owned by someone else is reported as not found.

        Raises:
            DraftNotFoundError: If the draft does not exist (for this user)
        """
        draft = await self.get_by_id(draft_id, session=session)
        if draft is None or (user_id is not None and draft.user_id != user_id):
            raise DraftNotFoundError(f"Draft {draft_id} not found")
        return draft

    async def list_drafts(self, user_id: str) -> List[Draft]:
        """Get a user's drafts, newest first."""
        query = (
            select(drafts)
            .where(drafts.c.user_id == user_id)
            .order_by(drafts.c.created_at.desc(), drafts.c.id)
        )
        return await self._fetch_all(query)

    @logged_operation("update_draft")
    async def update_draft(self, draft_id: str, user_id: str, updates: Dict[str, Any]) -> Draft:
        """
        Apply owner changes to a draft.

        Args:
            draft_id: Draft to update
            user_id: Requesting owner
            updates: Field changes. Descriptive fields are always allowed on a
                live draft; structural fields only in ``setup`` before any pick;
                ``status`` may only be set to ``abandoned``.

        Returns:
            Updated Draft

        Raises:
            DraftNotFoundError: Unknown draft or not the owner
            DraftCompleteError: Draft is completed or abandoned
            InvalidInputError: Disallowed field or invalid value
        """
        if not updates:
            raise InvalidInputError("No draft updates provided")

        status = updates.get('status')
        if status is not None and status != DraftStatus.ABANDONED.value:
            raise InvalidInputError("Draft status can only be changed to 'abandoned'")

        unknown = set(updates) - DESCRIPTIVE_FIELDS - STRUCTURAL_FIELDS - {'status'}
        if unknown:
            raise InvalidInputError(f"Cannot update draft fields: {', '.join(sorted(unknown))}")

        async with self.transaction() as session:
            draft = await self.get_draft(draft_id, user_id=user_id, session=session)

            if draft.is_terminal:
                raise DraftCompleteError(f"Draft {draft_id} is {draft.status}")

            structural = set(updates) & STRUCTURAL_FIELDS
            if structural and (draft.status != DraftStatus.SETUP.value or draft.current_pick != 1):
                raise InvalidInputError(
                    f"Cannot change {', '.join(sorted(structural))} after picks have been made"
                )

            try:
                changed = Draft(**{**draft.model_dump(), **updates})
            except ValidationError as e:
                raise InvalidInputError(f"Invalid draft update: {e}") from e

            values = changed.model_dump(include=set(updates))
            # Compare-and-set on current_pick so a pick landing mid-update wins
            result = await session.execute(
                update(drafts)
                .where(drafts.c.id == draft_id, drafts.c.current_pick == draft.current_pick)
                .values(**values)
            )
            if result.rowcount != 1:
                raise ConflictError("Draft changed while updating - refresh and retry")

            updated = await self.get_by_id(draft_id, session=session)

        logger.info(f"Updated draft {draft_id}: {sorted(updates)}")
        return updated

    async def abandon_draft(self, draft_id: str, user_id: str) -> Draft:
        """Mark a draft abandoned. No operation can leave this state."""
        return await self.update_draft(draft_id, user_id, {'status': DraftStatus.ABANDONED.value})


# Global service instance
draft_service = DraftService()
