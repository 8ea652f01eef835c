"""
Deferred Billing - Billing Provider Client

Talks to a Stripe-compatible REST API:
- Active product catalog with each product's default recurring price
- Recurring subscription creation for a customer

Every failure surfaces as ProviderError; callers decide whether it is
per-item or batch-level.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from deferred_billing.core.config import get_settings
from deferred_billing.services.exceptions import ProviderError

logger = logging.getLogger(__name__)

# Upper bound on catalog pages followed in one fetch
MAX_CATALOG_PAGES = 20


@dataclass(frozen=True)
class CatalogEntry:
    """An active product and its default recurring price, if it has one."""
    service_id: str
    default_price: Optional[str]


@dataclass(frozen=True)
class SubscriptionItem:
    price: str
    quantity: int


class BillingClient:
    """Client for the billing provider's REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        page_size: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.page_size = page_size
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def list_active_catalog(self) -> list[CatalogEntry]:
        """Fetch all active products with their default price expanded."""
        entries: list[CatalogEntry] = []
        starting_after: Optional[str] = None

        async with self._client() as client:
            for _ in range(MAX_CATALOG_PAGES):
                params: dict[str, Any] = {
                    "active": "true",
                    "limit": self.page_size,
                    "expand[]": "data.default_price",
                }
                if starting_after:
                    params["starting_after"] = starting_after

                data = await self._request(client, "GET", "/v1/products", params=params)
                products = data.get("data", [])
                for product in products:
                    entries.append(
                        CatalogEntry(
                            service_id=product["id"],
                            default_price=_price_id(product.get("default_price")),
                        )
                    )

                if not data.get("has_more") or not products:
                    break
                starting_after = products[-1]["id"]
            else:
                logger.warning(
                    f"[BILLING] Catalog truncated after {MAX_CATALOG_PAGES} pages"
                )

        logger.info(f"[BILLING] Loaded {len(entries)} active catalog product(s)")
        return entries

    async def create_subscription(
        self,
        account_id: str,
        items: Sequence[SubscriptionItem],
        metadata: dict[str, str],
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Create a recurring subscription and return its id."""
        form: dict[str, Any] = {
            "customer": account_id,
            "payment_behavior": "allow_incomplete",
        }
        for index, item in enumerate(items):
            form[f"items[{index}][price]"] = item.price
            form[f"items[{index}][quantity]"] = str(item.quantity)
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = value

        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None

        async with self._client() as client:
            data = await self._request(
                client, "POST", "/v1/subscriptions", data=form, headers=headers
            )

        subscription_id = data.get("id")
        if not subscription_id:
            raise ProviderError("Subscription response did not include an id")
        logger.info(f"[BILLING] Subscription created: {subscription_id}")
        return subscription_id

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path} failed: {e}") from e

        if response.status_code not in (200, 201):
            raise ProviderError(
                f"{method} {path} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"{method} {path} returned invalid JSON") from e


def _price_id(default_price: Any) -> Optional[str]:
    """default_price is an id string, an expanded price object, or null."""
    if isinstance(default_price, str):
        return default_price or None
    if isinstance(default_price, dict):
        return default_price.get("id") or None
    return None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message") or response.text
    return response.text


# Singleton
_billing_client: Optional[BillingClient] = None


def get_billing_client() -> BillingClient:
    """Get singleton billing client instance."""
    global _billing_client
    if _billing_client is None:
        settings = get_settings()
        _billing_client = BillingClient(
            base_url=settings.billing_api_base_url,
            api_key=settings.billing_api_key,
            timeout=settings.billing_timeout_seconds,
            page_size=settings.billing_catalog_page_size,
        )
    return _billing_client
