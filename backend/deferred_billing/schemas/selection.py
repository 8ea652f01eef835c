"""Pending selection schemas."""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import Field

from deferred_billing.schemas.base import BaseSchema, IDMixin
from deferred_billing.models.enums import EquipmentType


class SelectionInput(BaseSchema):
    """One chosen service option, as submitted by the customer."""

    service_id: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, gt=0, le=100)
    use_sticker: bool = False


class PendingSelectionRead(BaseSchema, IDMixin):
    """Snapshot of a stored selection (what a claim hands to activation)."""

    property_id: UUID
    user_id: UUID
    service_id: str
    quantity: int
    use_sticker: bool
    created_at: datetime

    @property
    def equipment_type(self) -> EquipmentType:
        return EquipmentType.from_sticker(self.use_sticker)


class SaveSelectionsRequest(BaseSchema):
    """Customer submission replacing all selections for a property."""

    selections: List[SelectionInput] = Field(..., max_length=50)


class SaveSelectionsResponse(BaseSchema):
    success: bool = True
    count: int


class PendingSelectionListResponse(BaseSchema):
    data: List[PendingSelectionRead]
