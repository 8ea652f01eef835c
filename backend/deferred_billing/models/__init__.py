"""SQLAlchemy models for deferred billing."""

from deferred_billing.models.user import User
from deferred_billing.models.property import Property
from deferred_billing.models.selection import PendingSelection
from deferred_billing.models.audit import AuditLog

__all__ = [
    "User",
    "Property",
    "PendingSelection",
    "AuditLog",
]
