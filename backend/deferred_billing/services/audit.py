"""Audit logging service."""

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deferred_billing.models.audit import AuditLog
from deferred_billing.models.enums import AuditAction

logger = logging.getLogger(__name__)


class AuditService:
    """Service for creating audit log entries.

    ``log`` writes inside the caller's session and raises on failure.
    ``record`` opens its own transaction and never raises: by the time it runs,
    the operation being audited has already happened.
    """

    def __init__(
        self,
        db: Optional[AsyncSession] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        self.db = db
        self.session_factory = session_factory

    async def log(
        self,
        action: AuditAction | str,
        entity_type: str,
        entity_id: UUID,
        actor_id: Optional[UUID] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        """Create an audit log entry in the current session."""
        if self.db is None:
            raise RuntimeError("AuditService.log requires a session")
        entry = AuditLog(
            action=action.value if isinstance(action, AuditAction) else action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            details=details or {},
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def record(
        self,
        action: AuditAction | str,
        entity_type: str,
        entity_id: UUID,
        actor_id: Optional[UUID] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Append an entry in a separate transaction; failures are only logged."""
        try:
            if self.session_factory is None:
                return await self.log(action, entity_type, entity_id, actor_id, details)
            async with self.session_factory() as db:
                async with db.begin():
                    return await AuditService(db).log(
                        action, entity_type, entity_id, actor_id, details
                    )
        except Exception:
            logger.exception(
                f"[AUDIT] Failed to record {action} for {entity_type} {entity_id}"
            )
            return None

    async def log_decision(
        self,
        property_id: UUID,
        action: AuditAction,
        actor_id: Optional[UUID],
        notes: Optional[str],
        bulk: bool = False,
        automated: bool = False,
    ) -> Optional[AuditLog]:
        """Record an address review decision."""
        details: dict[str, Any] = {"notes": notes}
        if bulk:
            details["bulk"] = True
        if automated:
            details["automated"] = True
        return await self.record(
            action=action,
            entity_type="property",
            entity_id=property_id,
            actor_id=actor_id,
            details=details,
        )

    async def log_activation(
        self,
        property_id: UUID,
        actor_id: Optional[UUID],
        source: str,
        activated: int,
        failed: int,
        total_selections: int,
    ) -> Optional[AuditLog]:
        """Record the summary of one activation run."""
        return await self.record(
            action=AuditAction.SUBSCRIPTIONS_ACTIVATED,
            entity_type="property",
            entity_id=property_id,
            actor_id=actor_id,
            details={
                "source": source,
                "automated": source != "admin_approval",
                "activated": activated,
                "failed": failed,
                "totalSelections": total_selections,
            },
        )
