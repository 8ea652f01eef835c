"""Address review workflow: serialized approve/deny decisions on properties."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deferred_billing.models.enums import (
    ActivationSource,
    AuditAction,
    ReviewDecision,
    ServiceStatus,
)
from deferred_billing.models.property import Property
from deferred_billing.services.activation import ActivationResult, SubscriptionActivator
from deferred_billing.services.audit import AuditService
from deferred_billing.services.exceptions import ConflictError, NotFoundError, StorageError
from deferred_billing.services.selections import PendingSelectionStore

logger = logging.getLogger(__name__)


@dataclass
class DecisionOutcome:
    """What a committed decision did."""
    property_id: UUID
    user_id: UUID
    decision: ReviewDecision
    claimed: int = 0
    activation: Optional[ActivationResult] = None


@dataclass
class BulkDecisionItemResult:
    id: UUID
    success: bool
    error: Optional[str] = None


@dataclass
class BulkDecisionResult:
    results: list[BulkDecisionItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)


class AddressReviewWorkflow:
    """Records review decisions and hands approved selections to activation.

    The decision, status update and selection claim commit together under a
    row lock on the property. Activation runs after commit and can never undo
    or fail the decision.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        activator: SubscriptionActivator,
        audit: Optional[AuditService] = None,
    ):
        self.session_factory = session_factory
        self.activator = activator
        self.audit = audit or AuditService(session_factory=session_factory)

    async def decide(
        self,
        property_id: UUID,
        decision: ReviewDecision | str,
        notes: Optional[str] = None,
        actor_id: Optional[UUID] = None,
        source: ActivationSource = ActivationSource.ADMIN_APPROVAL,
        bulk: bool = False,
    ) -> DecisionOutcome:
        """Approve or deny a property that is still pending review.

        Raises:
            NotFoundError: property does not exist
            ConflictError: property was already approved or denied
            StorageError: the decision transaction failed
        """
        decision = ReviewDecision(decision)

        try:
            async with self.session_factory() as db:
                async with db.begin():
                    result = await db.execute(
                        select(Property)
                        .where(Property.id == property_id)
                        .with_for_update()
                    )
                    prop = result.scalar_one_or_none()

                    if prop is None:
                        raise NotFoundError(f"Property {property_id} not found")
                    if prop.service_status.is_terminal:
                        raise ConflictError(f"Property already {prop.service_status.value}")

                    now = datetime.utcnow()
                    prop.service_status = decision.service_status
                    prop.service_status_notes = notes
                    prop.service_status_updated_at = now
                    prop.updated_at = now

                    claimed = await PendingSelectionStore(db).claim(property_id)
                    user_id = prop.user_id
        except SQLAlchemyError as e:
            raise StorageError(f"Decision transaction failed for property {property_id}") from e

        logger.info(
            f"[REVIEW] Property {property_id} {decision.value}; "
            f"claimed {len(claimed)} pending selection(s)"
        )

        outcome = DecisionOutcome(
            property_id=property_id,
            user_id=user_id,
            decision=decision,
            claimed=len(claimed),
        )

        await self.audit.log_decision(
            property_id=property_id,
            action=AuditAction.for_decision(decision),
            actor_id=actor_id,
            notes=notes,
            bulk=bulk,
        )

        if decision == ReviewDecision.APPROVED and claimed:
            try:
                outcome.activation = await self.activator.activate(
                    property_id,
                    user_id,
                    source=source,
                    preloaded_selections=claimed,
                    actor_id=actor_id,
                )
            except Exception:
                logger.exception(
                    f"[REVIEW] Activation failed after approving property {property_id}"
                )

        return outcome

    async def bulk_decide(
        self,
        property_ids: Sequence[UUID],
        decision: ReviewDecision | str,
        notes: Optional[str] = None,
        actor_id: Optional[UUID] = None,
    ) -> BulkDecisionResult:
        """Decide each property in its own transaction; one failure never stops the batch."""
        if not property_ids:
            raise ValueError("property_ids must be a non-empty sequence")

        bulk = BulkDecisionResult()
        for property_id in property_ids:
            try:
                await self.decide(
                    property_id,
                    decision,
                    notes=notes,
                    actor_id=actor_id,
                    source=ActivationSource.BULK_APPROVAL,
                    bulk=True,
                )
            except NotFoundError:
                bulk.results.append(BulkDecisionItemResult(id=property_id, success=False, error="Not found"))
            except ConflictError as e:
                bulk.results.append(BulkDecisionItemResult(id=property_id, success=False, error=str(e)))
            except StorageError:
                logger.exception(f"[REVIEW] Bulk decision transaction failed for {property_id}")
                bulk.results.append(
                    BulkDecisionItemResult(id=property_id, success=False, error="Transaction failed")
                )
            else:
                bulk.results.append(BulkDecisionItemResult(id=property_id, success=True))

        logger.info(
            f"[REVIEW] Bulk {ReviewDecision(decision).value}: "
            f"{bulk.succeeded} succeeded, {bulk.failed} failed"
        )
        return bulk

    async def approve_if_pending(self, property_id: UUID, notes: Optional[str] = None) -> bool:
        """Approve only if still pending review. Returns False if already decided or absent."""
        now = datetime.utcnow()
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    result = await db.execute(
                        update(Property)
                        .where(
                            Property.id == property_id,
                            Property.service_status == ServiceStatus.PENDING_REVIEW,
                        )
                        .values(
                            service_status=ServiceStatus.APPROVED,
                            service_status_notes=notes,
                            service_status_updated_at=now,
                            updated_at=now,
                        )
                        .execution_options(synchronize_session=False)
                    )
        except SQLAlchemyError as e:
            raise StorageError(f"Conditional approval failed for property {property_id}") from e
        return result.rowcount == 1

    async def auto_approve(
        self,
        property_id: UUID,
        user_id: UUID,
        notes: Optional[str] = None,
        actor_id: Optional[UUID] = None,
    ) -> Optional[ActivationResult]:
        """Automated approval trigger.

        Approves only a still-pending property, then activates without
        preloaded selections so the activator claims them atomically. Returns
        None when the property was already decided.
        """
        if not await self.approve_if_pending(property_id, notes):
            logger.info(f"[REVIEW] Property {property_id} already decided, skipping auto-approval")
            return None

        await self.audit.log_decision(
            property_id=property_id,
            action=AuditAction.ADDRESS_REVIEW_APPROVED,
            actor_id=actor_id,
            notes=notes,
            automated=True,
        )

        return await self.activator.activate(
            property_id,
            user_id,
            source=ActivationSource.AUTO_APPROVAL,
            actor_id=actor_id,
        )

    async def resume_activation(
        self,
        property_id: UUID,
        actor_id: Optional[UUID] = None,
    ) -> ActivationResult:
        """Activate selections still stored on an approved property.

        Selections restored after a catalog outage, or because the customer had
        no billing account yet, stay pending once the property is approved.
        The activator claims them itself, so concurrent resumes cannot bill
        the same selection twice.

        Raises:
            NotFoundError: property does not exist
            ConflictError: property is not approved
            ProviderError: the catalog is still unreachable (selections restored)
        """
        try:
            async with self.session_factory() as db:
                prop = await db.get(Property, property_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load property {property_id}") from e

        if prop is None:
            raise NotFoundError(f"Property {property_id} not found")
        if prop.service_status != ServiceStatus.APPROVED:
            raise ConflictError(f"Property is {prop.service_status.value}, not approved")

        logger.info(f"[REVIEW] Resuming activation for approved property {property_id}")
        return await self.activator.activate(
            property_id,
            prop.user_id,
            source=ActivationSource.ADMIN_APPROVAL,
            actor_id=actor_id,
        )
