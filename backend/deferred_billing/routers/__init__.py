"""API Routers for deferred billing."""

from deferred_billing.routers.properties import router as properties_router
from deferred_billing.routers.address_reviews import router as address_reviews_router

__all__ = [
    "properties_router",
    "address_reviews_router",
]
