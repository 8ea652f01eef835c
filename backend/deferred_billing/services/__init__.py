"""Services for deferred billing."""

from deferred_billing.services.audit import AuditService
from deferred_billing.services.billing import BillingClient, get_billing_client
from deferred_billing.services.selections import (
    PendingSelectionStore,
    CompensationHandler,
    claim_selections,
)
from deferred_billing.services.activation import ActivationResult, SubscriptionActivator
from deferred_billing.services.address_review import AddressReviewWorkflow, DecisionOutcome

__all__ = [
    "AuditService",
    "BillingClient",
    "get_billing_client",
    "PendingSelectionStore",
    "CompensationHandler",
    "claim_selections",
    "ActivationResult",
    "SubscriptionActivator",
    "AddressReviewWorkflow",
    "DecisionOutcome",
]
