"""Pending selection storage: replace-all save, listing, atomic claim, restore."""

import logging
from typing import Sequence, Union
from uuid import UUID

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deferred_billing.models.selection import PendingSelection
from deferred_billing.schemas.selection import PendingSelectionRead, SelectionInput
from deferred_billing.services.exceptions import StorageError

logger = logging.getLogger(__name__)

# Customer input or a claimed snapshot being put back
SelectionLike = Union[SelectionInput, PendingSelectionRead]

_SNAPSHOT_COLUMNS = (
    PendingSelection.id,
    PendingSelection.property_id,
    PendingSelection.user_id,
    PendingSelection.service_id,
    PendingSelection.quantity,
    PendingSelection.use_sticker,
    PendingSelection.created_at,
)


class PendingSelectionStore:
    """Owns the pending_service_selections rows.

    All methods run inside the caller's session; the caller controls the
    transaction boundary.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(
        self,
        property_id: UUID,
        user_id: UUID,
        selections: Sequence[SelectionLike],
    ) -> int:
        """Replace every selection for the property with ``selections``.

        Delete and insert share the caller's transaction, so other sessions see
        either the old set or the new one.
        """
        try:
            await self.db.execute(
                delete(PendingSelection).where(PendingSelection.property_id == property_id)
            )
            if selections:
                await self.db.execute(
                    insert(PendingSelection),
                    [
                        {
                            "property_id": property_id,
                            "user_id": user_id,
                            "service_id": sel.service_id,
                            "quantity": sel.quantity,
                            "use_sticker": sel.use_sticker,
                        }
                        for sel in selections
                    ],
                )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save selections for property {property_id}") from e
        return len(selections)

    async def fetch(self, property_id: UUID) -> list[PendingSelectionRead]:
        """List stored selections without claiming them."""
        try:
            result = await self.db.execute(
                select(*_SNAPSHOT_COLUMNS)
                .where(PendingSelection.property_id == property_id)
                .order_by(PendingSelection.created_at, PendingSelection.id)
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read selections for property {property_id}") from e
        return [PendingSelectionRead.model_validate(row) for row in result.all()]

    async def claim(self, property_id: UUID) -> list[PendingSelectionRead]:
        """Delete and return every selection for the property in one statement.

        DELETE ... RETURNING: of two concurrent claimers, only the one whose
        delete removes the rows gets them back; the other sees an empty list.
        """
        try:
            result = await self.db.execute(
                delete(PendingSelection)
                .where(PendingSelection.property_id == property_id)
                .returning(*_SNAPSHOT_COLUMNS)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to claim selections for property {property_id}") from e
        claimed = [PendingSelectionRead.model_validate(row) for row in result.all()]
        claimed.sort(key=lambda sel: (sel.created_at, str(sel.id)))
        return claimed


async def claim_selections(
    session_factory: async_sessionmaker[AsyncSession],
    property_id: UUID,
) -> list[PendingSelectionRead]:
    """Claim in a dedicated transaction that is committed before returning."""
    async with session_factory() as db:
        async with db.begin():
            claimed = await PendingSelectionStore(db).claim(property_id)
    if claimed:
        logger.info(f"[SELECTIONS] Claimed {len(claimed)} selection(s) for property {property_id}")
    return claimed


class CompensationHandler:
    """Puts claimed selections back when activation cannot proceed."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def restore(
        self,
        property_id: UUID,
        user_id: UUID,
        selections: Sequence[PendingSelectionRead],
    ) -> int:
        """Reinsert ``selections`` verbatim (service, quantity, equipment flag).

        Snapshots are written as stored, so request-body limits never reject a
        restore.
        """
        async with self.session_factory() as db:
            async with db.begin():
                restored = await PendingSelectionStore(db).save(
                    property_id,
                    user_id,
                    selections,
                )
        logger.warning(
            f"[SELECTIONS] Restored {restored} selection(s) for property {property_id}"
        )
        return restored
