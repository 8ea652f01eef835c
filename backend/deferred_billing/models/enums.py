"""Enumeration types for the deferred billing domain model."""

from enum import Enum


class ServiceStatus(str, Enum):
    """Review state gating whether billing may start for a property."""
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    DENIED = "denied"

    @property
    def is_terminal(self) -> bool:
        return self in (ServiceStatus.APPROVED, ServiceStatus.DENIED)


class ReviewDecision(str, Enum):
    """Decision an admin can record on a pending property."""
    APPROVED = "approved"
    DENIED = "denied"

    @property
    def service_status(self) -> ServiceStatus:
        return ServiceStatus(self.value)


class EquipmentType(str, Enum):
    """Bin equipment for a subscription, sent as subscription metadata."""
    RENTAL = "rental"    # Company-provided can
    OWN_CAN = "own_can"  # Customer's own can with a sticker

    @classmethod
    def from_sticker(cls, use_sticker: bool) -> "EquipmentType":
        return cls.OWN_CAN if use_sticker else cls.RENTAL


class ActivationSource(str, Enum):
    """Known triggers of an activation run."""
    ADMIN_APPROVAL = "admin_approval"
    BULK_APPROVAL = "bulk_approval"
    AUTO_APPROVAL = "auto_approval"


class AuditAction(str, Enum):
    """Actions tracked in audit log."""
    ADDRESS_REVIEW_APPROVED = "address_review_approved"
    ADDRESS_REVIEW_DENIED = "address_review_denied"
    SUBSCRIPTIONS_ACTIVATED = "subscriptions_activated"
    PENDING_SELECTIONS_SAVED = "pending_selections_saved"

    @classmethod
    def for_decision(cls, decision: ReviewDecision) -> "AuditAction":
        return cls(f"address_review_{decision.value}")
