"""Address review and activation schemas."""

from typing import List, Optional
from uuid import UUID

from pydantic import Field

from deferred_billing.schemas.base import BaseSchema
from deferred_billing.models.enums import ReviewDecision


class DecisionRequest(BaseSchema):
    """Approve or deny a property awaiting review."""

    decision: ReviewDecision
    notes: Optional[str] = Field(None, max_length=2000)


class BulkDecisionRequest(BaseSchema):
    """Apply one decision to many properties."""

    property_ids: List[UUID] = Field(..., min_length=1, max_length=200)
    decision: ReviewDecision
    notes: Optional[str] = Field(None, max_length=2000)


class ActivationResultResponse(BaseSchema):
    activated: int
    failed: int


class DecisionResponse(BaseSchema):
    success: bool = True
    claimed: int = 0
    activation: Optional[ActivationResultResponse] = None


class BulkDecisionItem(BaseSchema):
    id: UUID
    success: bool
    error: Optional[str] = None


class BulkDecisionResponse(BaseSchema):
    results: List[BulkDecisionItem]
    succeeded: int
    failed: int
