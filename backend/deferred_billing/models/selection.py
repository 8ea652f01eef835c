"""PendingSelection model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    String,
    DateTime,
    ForeignKey,
    Integer,
    Boolean,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from deferred_billing.core.database import Base

if TYPE_CHECKING:
    from deferred_billing.models.property import Property


class PendingSelection(Base):
    """A service a customer chose for a property before it passed review.

    Rows are replaced as a full set per property and deleted exactly once,
    when claimed for activation.
    """

    __tablename__ = "pending_service_selections"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Billing catalog product id
    service_id: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    use_sticker: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    property: Mapped["Property"] = relationship(
        "Property", back_populates="pending_selections"
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_pending_selection_quantity_positive"),
    )
