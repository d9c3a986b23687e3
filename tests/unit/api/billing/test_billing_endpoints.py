"""Tests for bundle, checkout and auto-renewal endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import status
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_bundles(internal_client: AsyncClient):
    response = await internal_client.get("/v1/credits/bundles")

    assert response.status_code == status.HTTP_200_OK
    bundles = {bundle["id"]: bundle for bundle in response.json()["data"]}
    assert list(bundles) == ["starter", "basic", "pro", "business", "enterprise"]
    assert bundles["pro"]["total_credits"] == 57_500_000
    assert bundles["enterprise"]["requires_monthly_burn"] == 1_400_000
    assert bundles["starter"]["requires_monthly_burn"] is None


@pytest.mark.asyncio
async def test_create_checkout_session(internal_client: AsyncClient, test_user):
    with (
        patch("stripe.Customer.create") as mock_customer,
        patch("stripe.checkout.Session.create") as mock_session,
    ):
        mock_customer.return_value = MagicMock(id="cus_api_1")
        mock_session.return_value = MagicMock(
            id="cs_test_api", url="https://checkout.stripe.com/c/pay/cs_test_api"
        )

        response = await internal_client.post(
            f"/v1/users/{test_user.id}/credits/checkout",
            json={
                "bundle_id": "pro",
                "success_url": "https://app.promptflow.ai/billing?success=1",
                "cancel_url": "https://app.promptflow.ai/billing",
            },
        )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message_code"] == "CHECKOUT_CREATED"
    assert body["data"] == {
        "session_id": "cs_test_api",
        "url": "https://checkout.stripe.com/c/pay/cs_test_api",
    }


@pytest.mark.asyncio
async def test_enterprise_checkout_is_forbidden_without_volume(
    internal_client: AsyncClient, test_user
):
    with patch("stripe.checkout.Session.create") as mock_session:
        response = await internal_client.post(
            f"/v1/users/{test_user.id}/credits/checkout",
            json={
                "bundle_id": "enterprise",
                "success_url": "https://app.promptflow.ai/billing",
                "cancel_url": "https://app.promptflow.ai/billing",
            },
        )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    body = response.json()
    assert body["message_code"] == "BUNDLE_NOT_ELIGIBLE"
    assert body["details"]["required_monthly_burn"] == 1_400_000
    mock_session.assert_not_called()


@pytest.mark.asyncio
async def test_unknown_bundle_fails_validation(internal_client: AsyncClient, test_user):
    response = await internal_client.post(
        f"/v1/users/{test_user.id}/credits/checkout",
        json={
            "bundle_id": "platinum",
            "success_url": "https://app.promptflow.ai/billing",
            "cancel_url": "https://app.promptflow.ai/billing",
        },
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_auto_renewal_settings_round_trip(internal_client: AsyncClient, test_user):
    initial = await internal_client.get(f"/v1/users/{test_user.id}/auto-renewal")
    assert initial.status_code == status.HTTP_200_OK
    assert initial.json()["data"]["enabled"] is False
    assert initial.json()["data"]["effective_threshold"] == 1_000_000

    response = await internal_client.put(
        f"/v1/users/{test_user.id}/auto-renewal",
        json={"enabled": True, "threshold": 3_000_000, "bundle_id": "basic"},
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message_code"] == "AUTO_RENEWAL_UPDATED"
    assert body["data"]["enabled"] is True
    assert body["data"]["bundle_id"] == "basic"
    assert body["data"]["threshold"] == 3_000_000
    assert body["data"]["recent_attempts"] == []


@pytest.mark.asyncio
async def test_enabling_auto_renewal_without_bundle(
    internal_client: AsyncClient, test_user
):
    response = await internal_client.put(
        f"/v1/users/{test_user.id}/auto-renewal", json={"enabled": True}
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message_code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_auto_renewal_check_for_disabled_user(
    internal_client: AsyncClient, test_user
):
    response = await internal_client.post(
        f"/v1/users/{test_user.id}/auto-renewal/check"
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == {"triggered": False}


@pytest.mark.asyncio
async def test_auto_renewal_for_unknown_user(internal_client: AsyncClient):
    response = await internal_client.get(
        "/v1/users/00000000-0000-4000-8000-000000000000/auto-renewal"
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message_code"] == "USER_NOT_FOUND"
