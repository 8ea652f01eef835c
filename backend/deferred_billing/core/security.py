"""Actor identity dependencies.

Authentication happens upstream; the gateway forwards the verified identity
in ``X-Actor-Id`` and the actor's role in ``X-Actor-Role``. This module only
parses those headers into an explicit actor that is threaded into services.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

ADMIN_ROLE = "admin"


class Actor:
    """The caller on whose behalf an operation runs."""

    def __init__(self, actor_id: UUID, role: Optional[str] = None):
        self.actor_id = actor_id
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


async def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """Resolve the actor from gateway headers."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity",
        )
    try:
        actor_id = UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid actor identity",
        )
    return Actor(actor_id=actor_id, role=x_actor_role)


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    """Require the actor to hold the admin role."""
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return actor
