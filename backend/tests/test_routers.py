"""
HTTP tests for the pending-selection and address review endpoints.

The routers are mounted on a bare FastAPI app with the database and billing
dependencies overridden; startup environment validation is not involved.
"""
import uuid

import httpx
import pytest
from fastapi import FastAPI

from deferred_billing.core.database import get_db, get_session_factory
from deferred_billing.models.enums import AuditAction, ServiceStatus
from deferred_billing.routers import address_reviews_router, properties_router
from deferred_billing.services.billing import get_billing_client
from deferred_billing.services.exceptions import ProviderError


@pytest.fixture
def app(session_factory, billing):
    app = FastAPI()
    app.include_router(properties_router, prefix="/v1")
    app.include_router(address_reviews_router, prefix="/v1")

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_billing_client] = lambda: billing
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def as_user(user_id):
    return {"X-Actor-Id": str(user_id)}


@pytest.fixture
def admin_headers():
    return {"X-Actor-Id": str(uuid.uuid4()), "X-Actor-Role": "admin"}


SELECTIONS = {
    "selections": [
        {"service_id": "svc-trash", "quantity": 1, "use_sticker": False},
        {"service_id": "svc-recycling", "quantity": 2, "use_sticker": True},
    ]
}


class TestPendingSelections:
    async def test_save_and_list(self, client, pending_property, customer, audit_entries):
        url = f"/v1/properties/{pending_property.id}/pending-selections"

        response = await client.post(url, json=SELECTIONS, headers=as_user(customer.id))

        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 2}

        response = await client.get(url, headers=as_user(customer.id))

        assert response.status_code == 200
        data = response.json()["data"]
        assert sorted((s["service_id"], s["quantity"], s["use_sticker"]) for s in data) == [
            ("svc-recycling", 2, True),
            ("svc-trash", 1, False),
        ]

        [entry] = await audit_entries(AuditAction.PENDING_SELECTIONS_SAVED.value)
        assert entry.actor_id == customer.id
        assert entry.details == {"count": 2}

    async def test_save_replaces(self, client, pending_property, customer, count_selections):
        url = f"/v1/properties/{pending_property.id}/pending-selections"
        await client.post(url, json=SELECTIONS, headers=as_user(customer.id))

        response = await client.post(
            url,
            json={"selections": [{"service_id": "svc-yard", "quantity": 1}]},
            headers=as_user(customer.id),
        )

        assert response.json()["count"] == 1
        assert await count_selections() == 1

    async def test_default_quantity_and_sticker(self, client, pending_property, customer, fetch_selections):
        url = f"/v1/properties/{pending_property.id}/pending-selections"

        await client.post(url, json={"selections": [{"service_id": "svc-trash"}]}, headers=as_user(customer.id))

        [stored] = await fetch_selections(pending_property.id)
        assert stored.quantity == 1
        assert stored.use_sticker is False

    async def test_unknown_property(self, client, customer):
        response = await client.post(
            f"/v1/properties/{uuid.uuid4()}/pending-selections",
            json=SELECTIONS,
            headers=as_user(customer.id),
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Property not found"

    async def test_foreign_property(self, client, pending_property, unlinked_customer):
        url = f"/v1/properties/{pending_property.id}/pending-selections"

        assert (await client.post(url, json=SELECTIONS, headers=as_user(unlinked_customer.id))).status_code == 404
        assert (await client.get(url, headers=as_user(unlinked_customer.id))).status_code == 404

    async def test_selections_must_be_a_list(self, client, pending_property, customer):
        response = await client.post(
            f"/v1/properties/{pending_property.id}/pending-selections",
            json={"selections": "svc-trash"},
            headers=as_user(customer.id),
        )

        assert response.status_code == 422

    async def test_rejects_non_positive_quantity(self, client, pending_property, customer, count_selections):
        response = await client.post(
            f"/v1/properties/{pending_property.id}/pending-selections",
            json={"selections": [{"service_id": "svc-trash", "quantity": 0}]},
            headers=as_user(customer.id),
        )

        assert response.status_code == 422
        assert await count_selections() == 0

    async def test_decided_property_rejects_save(self, client, pending_property, customer, admin_headers):
        await client.put(
            f"/v1/address-reviews/{pending_property.id}/decision",
            json={"decision": "denied"},
            headers=admin_headers,
        )

        response = await client.post(
            f"/v1/properties/{pending_property.id}/pending-selections",
            json=SELECTIONS,
            headers=as_user(customer.id),
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "Property already denied"

    async def test_missing_identity(self, client, pending_property):
        response = await client.get(f"/v1/properties/{pending_property.id}/pending-selections")

        assert response.status_code == 401

    async def test_malformed_identity(self, client, pending_property):
        response = await client.get(
            f"/v1/properties/{pending_property.id}/pending-selections",
            headers={"X-Actor-Id": "not-a-uuid"},
        )

        assert response.status_code == 401


class TestDecisionEndpoint:
    async def test_approve_activates(self, client, billing, pending_property, customer, admin_headers,
                                     load_property):
        await client.post(
            f"/v1/properties/{pending_property.id}/pending-selections",
            json=SELECTIONS,
            headers=as_user(customer.id),
        )

        response = await client.put(
            f"/v1/address-reviews/{pending_property.id}/decision",
            json={"decision": "approved", "notes": "Verified"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "claimed": 2,
            "activation": {"activated": 2, "failed": 0},
        }
        assert billing.create_subscription.await_count == 2
        assert (await load_property(pending_property.id)).service_status == ServiceStatus.APPROVED

    async def test_activation_failures_do_not_change_status_code(self, client, billing, pending_property,
                                                                 customer, admin_headers):
        billing.create_subscription.side_effect = RuntimeError("provider exploded")
        await client.post(
            f"/v1/properties/{pending_property.id}/pending-selections",
            json=SELECTIONS,
            headers=as_user(customer.id),
        )

        response = await client.put(
            f"/v1/address-reviews/{pending_property.id}/decision",
            json={"decision": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["activation"] == {"activated": 0, "failed": 2}

    async def test_conflict(self, client, pending_property, admin_headers):
        url = f"/v1/address-reviews/{pending_property.id}/decision"
        await client.put(url, json={"decision": "approved"}, headers=admin_headers)

        response = await client.put(url, json={"decision": "denied"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["detail"] == "Property already approved"

    async def test_not_found(self, client, admin_headers):
        response = await client.put(
            f"/v1/address-reviews/{uuid.uuid4()}/decision",
            json={"decision": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 404

    async def test_invalid_decision(self, client, pending_property, admin_headers):
        response = await client.put(
            f"/v1/address-reviews/{pending_property.id}/decision",
            json={"decision": "maybe"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    async def test_requires_admin(self, client, pending_property, customer, load_property):
        response = await client.put(
            f"/v1/address-reviews/{pending_property.id}/decision",
            json={"decision": "approved"},
            headers=as_user(customer.id),
        )

        assert response.status_code == 403
        assert (await load_property(pending_property.id)).service_status == ServiceStatus.PENDING_REVIEW


class TestBulkDecisionEndpoint:
    async def test_mixed_results(self, client, pending_property, unlinked_property, admin_headers):
        missing = uuid.uuid4()

        response = await client.post(
            "/v1/address-reviews/bulk-decision",
            json={
                "property_ids": [str(pending_property.id), str(missing), str(unlinked_property.id)],
                "decision": "approved",
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] == 2
        assert body["failed"] == 1
        assert body["results"][1] == {"id": str(missing), "success": False, "error": "Not found"}

    async def test_empty_list_rejected(self, client, admin_headers):
        response = await client.post(
            "/v1/address-reviews/bulk-decision",
            json={"property_ids": [], "decision": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    async def test_requires_admin(self, client, pending_property, customer):
        response = await client.post(
            "/v1/address-reviews/bulk-decision",
            json={"property_ids": [str(pending_property.id)], "decision": "approved"},
            headers=as_user(customer.id),
        )

        assert response.status_code == 403


class TestResumeActivationEndpoint:
    async def test_retries_after_outage(self, client, billing, pending_property, customer, admin_headers,
                                        fetch_selections):
        billing.list_active_catalog.side_effect = ProviderError("catalog down", status_code=503)
        await client.post(
            f"/v1/properties/{pending_property.id}/pending-selections",
            json=SELECTIONS,
            headers=as_user(customer.id),
        )
        await client.put(
            f"/v1/address-reviews/{pending_property.id}/decision",
            json={"decision": "approved"},
            headers=admin_headers,
        )
        url = f"/v1/address-reviews/{pending_property.id}/activation"

        response = await client.post(url, headers=admin_headers)

        assert response.status_code == 502
        assert len(await fetch_selections(pending_property.id)) == 2

        billing.list_active_catalog.side_effect = None
        response = await client.post(url, headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"activated": 2, "failed": 0}
        assert await fetch_selections(pending_property.id) == []

    async def test_pending_property_conflicts(self, client, pending_property, admin_headers):
        response = await client.post(
            f"/v1/address-reviews/{pending_property.id}/activation",
            headers=admin_headers,
        )

        assert response.status_code == 409

    async def test_not_found(self, client, admin_headers):
        response = await client.post(f"/v1/address-reviews/{uuid.uuid4()}/activation", headers=admin_headers)

        assert response.status_code == 404

    async def test_requires_admin(self, client, pending_property, customer):
        response = await client.post(
            f"/v1/address-reviews/{pending_property.id}/activation",
            headers=as_user(customer.id),
        )

        assert response.status_code == 403
