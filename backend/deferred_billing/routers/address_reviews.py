"""Admin address review router."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deferred_billing.core.config import get_settings
from deferred_billing.core.database import get_session_factory
from deferred_billing.core.security import Actor, require_admin
from deferred_billing.schemas.review import (
    ActivationResultResponse,
    BulkDecisionItem,
    BulkDecisionRequest,
    BulkDecisionResponse,
    DecisionRequest,
    DecisionResponse,
)
from deferred_billing.services.activation import SubscriptionActivator
from deferred_billing.services.address_review import AddressReviewWorkflow
from deferred_billing.services.billing import BillingClient, get_billing_client
from deferred_billing.services.exceptions import (
    ConflictError,
    NotFoundError,
    ProviderError,
    StorageError,
)

router = APIRouter(prefix="/address-reviews", tags=["address-reviews"])


def get_review_workflow(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    billing: BillingClient = Depends(get_billing_client),
) -> AddressReviewWorkflow:
    """Build the review workflow for a request."""
    activator = SubscriptionActivator(
        session_factory,
        billing,
        idempotency_keys=get_settings().billing_idempotency_keys,
    )
    return AddressReviewWorkflow(session_factory, activator)


@router.put("/{property_id}/decision", response_model=DecisionResponse)
async def decide_address_review(
    property_id: UUID,
    data: DecisionRequest,
    workflow: AddressReviewWorkflow = Depends(get_review_workflow),
    admin: Actor = Depends(require_admin),
):
    """Approve or deny a pending property.

    Activation outcomes are reported in the body but never change the status
    code: the decision itself is what this endpoint confirms.
    """
    try:
        outcome = await workflow.decide(
            property_id,
            data.decision,
            notes=data.notes,
            actor_id=admin.actor_id,
        )
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update address review",
        )

    activation = None
    if outcome.activation is not None:
        activation = ActivationResultResponse(
            activated=outcome.activation.activated,
            failed=outcome.activation.failed,
        )
    return DecisionResponse(claimed=outcome.claimed, activation=activation)


@router.post("/{property_id}/activation", response_model=ActivationResultResponse)
async def resume_activation(
    property_id: UUID,
    workflow: AddressReviewWorkflow = Depends(get_review_workflow),
    admin: Actor = Depends(require_admin),
):
    """Activate selections left pending on an approved property."""
    try:
        result = await workflow.resume_activation(property_id, actor_id=admin.actor_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ProviderError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Billing provider unavailable; selections kept for a later retry",
        )
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to activate selections",
        )

    return ActivationResultResponse(activated=result.activated, failed=result.failed)


@router.post("/bulk-decision", response_model=BulkDecisionResponse)
async def bulk_decide_address_reviews(
    data: BulkDecisionRequest,
    workflow: AddressReviewWorkflow = Depends(get_review_workflow),
    admin: Actor = Depends(require_admin),
):
    """Apply one decision to many pending properties."""
    result = await workflow.bulk_decide(
        data.property_ids,
        data.decision,
        notes=data.notes,
        actor_id=admin.actor_id,
    )
    return BulkDecisionResponse(
        results=[
            BulkDecisionItem(id=item.id, success=item.success, error=item.error)
            for item in result.results
        ],
        succeeded=result.succeeded,
        failed=result.failed,
    )
