"""Property model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Enum as SQLEnum, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from deferred_billing.core.database import Base
from deferred_billing.models.enums import ServiceStatus

if TYPE_CHECKING:
    from deferred_billing.models.user import User
    from deferred_billing.models.selection import PendingSelection


class Property(Base):
    """A service address owned by a customer.

    ``service_status`` moves only from ``pending_review`` to ``approved`` or
    ``denied``; both are terminal.
    """

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    address: Mapped[str] = mapped_column(String(500), nullable=False)

    # Review state
    service_status: Mapped[ServiceStatus] = mapped_column(
        SQLEnum(ServiceStatus, values_callable=lambda e: [m.value for m in e]),
        default=ServiceStatus.PENDING_REVIEW,
        nullable=False,
        index=True,
    )
    service_status_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    service_status_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="properties")
    pending_selections: Mapped[list["PendingSelection"]] = relationship(
        "PendingSelection",
        back_populates="property",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
