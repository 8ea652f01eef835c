"""
Activation Service Layer

Turns a property's pending selections into recurring subscriptions with the
billing provider, exactly once per claimed selection.

Flow:
1. Look up the user (missing user: nothing happens)
2. Use the caller's already-claimed selections, or claim them here
3. No linked billing account: restore the selections and report them failed
4. Fetch the catalog once, create one subscription per selection
5. Write one audit entry summarizing the run

No database session is open while the billing provider is called.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deferred_billing.models.enums import ActivationSource
from deferred_billing.models.user import User
from deferred_billing.schemas.selection import PendingSelectionRead
from deferred_billing.services.audit import AuditService
from deferred_billing.services.billing import BillingClient, SubscriptionItem
from deferred_billing.services.exceptions import StorageError
from deferred_billing.services.selections import CompensationHandler, claim_selections

logger = logging.getLogger(__name__)


@dataclass
class ActivationResult:
    """Outcome of one activation run"""
    activated: int = 0
    failed: int = 0


class SubscriptionActivator:
    """Creates subscriptions for claimed selections, isolating per-item failures."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        billing: BillingClient,
        audit: Optional[AuditService] = None,
        compensation: Optional[CompensationHandler] = None,
        idempotency_keys: bool = True,
    ):
        self.session_factory = session_factory
        self.billing = billing
        self.audit = audit or AuditService(session_factory=session_factory)
        self.compensation = compensation or CompensationHandler(session_factory)
        self.idempotency_keys = idempotency_keys

    async def activate(
        self,
        property_id: UUID,
        user_id: UUID,
        source: ActivationSource | str = "unknown",
        preloaded_selections: Optional[Sequence[Any]] = None,
        actor_id: Optional[UUID] = None,
    ) -> ActivationResult:
        """Activate pending selections for a property.

        Args:
            property_id: Property whose selections are activated
            user_id: Owner of the property and of the billing account
            source: Trigger, recorded in the audit entry
            preloaded_selections: Selections the caller already claimed in its
                own transaction; when given they are used as-is and nothing is
                claimed here
            actor_id: Audit actor; defaults to ``user_id``

        Returns:
            ActivationResult with activated/failed counts
        """
        source = source.value if isinstance(source, ActivationSource) else source

        user = await self._get_user(user_id)
        if user is None:
            logger.warning(f"[ACTIVATION] User {user_id} not found, skipping property {property_id}")
            return ActivationResult()

        if preloaded_selections is not None:
            selections = [_as_snapshot(sel) for sel in preloaded_selections]
        else:
            selections = await claim_selections(self.session_factory, property_id)

        if not selections:
            return ActivationResult()

        if not user.billing_customer_id:
            logger.error(
                f"[ACTIVATION] User {user_id} has no billing account; "
                f"restoring {len(selections)} selection(s) for property {property_id}"
            )
            await self.compensation.restore(property_id, user_id, selections)
            return ActivationResult(activated=0, failed=len(selections))

        try:
            catalog = await self.billing.list_active_catalog()
        except Exception:
            logger.error(
                f"[ACTIVATION] Catalog unavailable; restoring {len(selections)} "
                f"selection(s) for property {property_id}"
            )
            await self.compensation.restore(property_id, user_id, selections)
            raise

        prices = {entry.service_id: entry.default_price for entry in catalog if entry.default_price}

        result = ActivationResult()
        for selection in selections:
            price = prices.get(selection.service_id)
            if not price:
                logger.error(f"[ACTIVATION] No default price for product {selection.service_id}")
                result.failed += 1
                continue

            try:
                await self.billing.create_subscription(
                    account_id=user.billing_customer_id,
                    items=[SubscriptionItem(price=price, quantity=selection.quantity)],
                    metadata={
                        "propertyId": str(property_id),
                        "equipmentType": selection.equipment_type.value,
                    },
                    idempotency_key=self._idempotency_key(property_id, selection),
                )
            except Exception as e:
                logger.error(
                    f"[ACTIVATION] Subscription creation failed for selection {selection.id}: {e}"
                )
                result.failed += 1
                continue

            result.activated += 1

        logger.info(
            f"[ACTIVATION] Property {property_id} ({source}): "
            f"{result.activated} activated, {result.failed} failed of {len(selections)}"
        )

        await self.audit.log_activation(
            property_id=property_id,
            actor_id=actor_id or user_id,
            source=source,
            activated=result.activated,
            failed=result.failed,
            total_selections=len(selections),
        )

        return result

    async def _get_user(self, user_id: UUID) -> Optional[User]:
        try:
            async with self.session_factory() as db:
                return await db.get(User, user_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load user {user_id}") from e

    def _idempotency_key(self, property_id: UUID, selection: PendingSelectionRead) -> Optional[str]:
        if not self.idempotency_keys:
            return None
        return f"activation:{property_id}:{selection.id}"


def _as_snapshot(selection: Any) -> PendingSelectionRead:
    if isinstance(selection, PendingSelectionRead):
        return selection
    return PendingSelectionRead.model_validate(selection)
