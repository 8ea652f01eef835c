"""Customer pending-selection router."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deferred_billing.core.database import get_db
from deferred_billing.core.security import Actor, get_actor
from deferred_billing.models.enums import AuditAction, ServiceStatus
from deferred_billing.models.property import Property
from deferred_billing.schemas.selection import (
    PendingSelectionListResponse,
    SaveSelectionsRequest,
    SaveSelectionsResponse,
)
from deferred_billing.services.audit import AuditService
from deferred_billing.services.exceptions import StorageError
from deferred_billing.services.selections import PendingSelectionStore

router = APIRouter(prefix="/properties", tags=["pending-selections"])


@router.post(
    "/{property_id}/pending-selections",
    response_model=SaveSelectionsResponse,
)
async def save_pending_selections(
    property_id: UUID,
    data: SaveSelectionsRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """Replace the selections for a property that is still awaiting review."""
    # Same row lock as the review decision, so a save cannot land after a claim
    result = await db.execute(
        select(Property)
        .where(Property.id == property_id, Property.user_id == actor.actor_id)
        .with_for_update()
    )
    prop = result.scalar_one_or_none()

    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    if prop.service_status != ServiceStatus.PENDING_REVIEW:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Property already {prop.service_status.value}",
        )

    try:
        count = await PendingSelectionStore(db).save(property_id, actor.actor_id, data.selections)
    except StorageError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save selections",
        )

    audit = AuditService(db)
    await audit.log(
        action=AuditAction.PENDING_SELECTIONS_SAVED,
        entity_type="property",
        entity_id=property_id,
        actor_id=actor.actor_id,
        details={"count": count},
    )
    await db.commit()

    return SaveSelectionsResponse(count=count)


@router.get(
    "/{property_id}/pending-selections",
    response_model=PendingSelectionListResponse,
)
async def list_pending_selections(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """List the selections stored for an owned property."""
    result = await db.execute(
        select(Property.id).where(
            Property.id == property_id,
            Property.user_id == actor.actor_id,
        )
    )
    if not result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    selections = await PendingSelectionStore(db).fetch(property_id)
    return PendingSelectionListResponse(data=selections)
