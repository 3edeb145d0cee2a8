"""
Test Case Suite: Authentication Module
Test ID Range: TC-001 to TC-014

This test suite validates registration through 1Confirmed, login, token
handling and the confirmed-token sync endpoint.
"""

import pytest
from datetime import timedelta
from unittest.mock import patch, AsyncMock
from httpx import AsyncClient
from app.services.confirmed_service import ConfirmedAPIError
from app.utils.security import create_access_token

REGISTER_PAYLOAD = {
    "name": "Test Agent",
    "email": "Agent@Example.com",
    "phone": "+212600000001",
    "password": "secret123",
    "c_password": "secret123",
    "country_code": "ma",
}


class TestRegistration:
    """
    Test Case TC-001: Register with Valid Data
    Description: Verify that a user registered at 1Confirmed is stored locally and receives a token
    Expected Result: Returns 201 with the session payload
    """
    @pytest.mark.asyncio
    async def test_tc001_register_valid_data(self, client: AsyncClient, confirmed_user_payload):
        """TC-001: Register with valid data"""
        with patch(
            "app.services.auth_service.register_with_confirmed",
            new=AsyncMock(return_value=confirmed_user_payload),
        ) as mock_register:
            response = await client.post("/api/v1/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User Created Successfully"

        data = body["data"]
        assert data["email"] == "agent@example.com"
        assert data["confirmed_user_id"] == 4242
        assert data["confirmed_token"] == "confirmed-token-new"
        assert data["credit"]["credit"] == 750
        assert data["cr_account"] is None
        assert data["token"]

        kwargs = mock_register.await_args.kwargs
        assert kwargs["email"] == "agent@example.com"
        assert kwargs["country_code"] == "MA"

    """
    Test Case TC-002: Register with Mismatched Passwords
    Description: Verify that c_password must equal password
    Expected Result: Returns 400 validation error naming c_password
    """
    @pytest.mark.asyncio
    async def test_tc002_register_password_mismatch(self, client: AsyncClient):
        """TC-002: Register with mismatched passwords"""
        payload = {**REGISTER_PAYLOAD, "c_password": "different"}
        response = await client.post("/api/v1/register", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert any(error["field"] == "c_password" for error in body["errors"])

    """
    Test Case TC-003: Register with Invalid Phone
    Description: Verify that the phone must be + followed by 10-15 digits
    Expected Result: Returns 400 validation error
    """
    @pytest.mark.asyncio
    async def test_tc003_register_invalid_phone(self, client: AsyncClient):
        """TC-003: Register with invalid phone"""
        payload = {**REGISTER_PAYLOAD, "phone": "0600000001"}
        response = await client.post("/api/v1/register", json=payload)

        assert response.status_code == 400
        assert any(error["field"] == "phone" for error in response.json()["errors"])

    """
    Test Case TC-004: Register with Existing Email
    Description: Verify that a local duplicate is rejected before calling 1Confirmed
    Expected Result: Returns 400 and the provider is never called
    """
    @pytest.mark.asyncio
    async def test_tc004_register_duplicate_email(self, client: AsyncClient, make_user):
        """TC-004: Register with existing email"""
        await make_user(email="agent@example.com")

        with patch("app.services.auth_service.register_with_confirmed", new=AsyncMock()) as mock_register:
            response = await client.post("/api/v1/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 400
        assert response.json()["message"] == "User with this email already exists"
        mock_register.assert_not_awaited()

    """
    Test Case TC-005: Provider Rejects Registration
    Description: Verify that a 1Confirmed error answer is relayed with its details
    Expected Result: Returns 400 with error and details
    """
    @pytest.mark.asyncio
    async def test_tc005_register_provider_rejects(self, client: AsyncClient):
        """TC-005: Provider rejects registration"""
        error = ConfirmedAPIError(
            "The email has already been taken.",
            status_code=422,
            details={"success": False, "message": "The email has already been taken."},
        )
        with patch("app.services.auth_service.register_with_confirmed", new=AsyncMock(side_effect=error)):
            response = await client.post("/api/v1/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "1Confirmed registration failed"
        assert body["error"] == "The email has already been taken."
        assert body["details"]["success"] is False

    """
    Test Case TC-006: Provider Unreachable
    Description: Verify that a transport failure maps to a 500 with a generic message
    Expected Result: Returns 500
    """
    @pytest.mark.asyncio
    async def test_tc006_register_provider_unreachable(self, client: AsyncClient):
        """TC-006: Provider unreachable"""
        error = ConfirmedAPIError("1Confirmed request timed out")
        with patch("app.services.auth_service.register_with_confirmed", new=AsyncMock(side_effect=error)):
            response = await client.post("/api/v1/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 500
        assert response.json()["message"] == "External service unavailable. Please try again later."


class TestLogin:
    """
    Test Case TC-007: Login with Valid Credentials
    Description: Verify that a user can log in with email and password
    Expected Result: Returns 200 with a token
    """
    @pytest.mark.asyncio
    async def test_tc007_login_valid_credentials(self, client: AsyncClient, make_user):
        """TC-007: Login with valid credentials"""
        user = await make_user(email="login@example.com")

        response = await client.post("/api/v1/login", json={
            "email": "LOGIN@example.com",
            "password": "StrongPass123!",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["data"]["id"] == user.id
        assert body["data"]["credit"] == {"id": user.id, "credit": 500}
        assert body["data"]["token"]

    """
    Test Case TC-008: Login with Wrong Password
    Description: Verify that a wrong password is rejected
    Expected Result: Returns 401 Invalid credentials
    """
    @pytest.mark.asyncio
    async def test_tc008_login_wrong_password(self, client: AsyncClient, make_user):
        """TC-008: Login with wrong password"""
        await make_user(email="login@example.com")

        response = await client.post("/api/v1/login", json={
            "email": "login@example.com",
            "password": "WrongPass",
        })

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials"}

    """
    Test Case TC-009: Login with Unknown Email
    Description: Verify that an unknown email gets the same answer as a wrong password
    Expected Result: Returns 401 Invalid credentials
    """
    @pytest.mark.asyncio
    async def test_tc009_login_unknown_email(self, client: AsyncClient):
        """TC-009: Login with unknown email"""
        response = await client.post("/api/v1/login", json={
            "email": "nobody@example.com",
            "password": "whatever",
        })

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"


class TestTokens:
    """
    Test Case TC-010: Access Protected Endpoint without Token
    Expected Result: Returns 401 Access denied
    """
    @pytest.mark.asyncio
    async def test_tc010_missing_token(self, client: AsyncClient):
        """TC-010: Missing token"""
        response = await client.get("/api/v1/properties")

        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. No token provided."

    """
    Test Case TC-011: Access with Malformed Token
    Expected Result: Returns 401 Invalid token
    """
    @pytest.mark.asyncio
    async def test_tc011_invalid_token(self, client: AsyncClient):
        """TC-011: Malformed token"""
        response = await client.get(
            "/api/v1/prospects",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token."

    """
    Test Case TC-012: Access with Expired Token
    Expected Result: Returns 401 Token expired
    """
    @pytest.mark.asyncio
    async def test_tc012_expired_token(self, client: AsyncClient, make_user):
        """TC-012: Expired token"""
        user = await make_user()
        token = create_access_token(user.id, expires_delta=timedelta(seconds=-10))

        response = await client.get("/api/v1/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Token expired."

    """
    Test Case TC-013: Token for Deleted User
    Expected Result: Returns 401 Invalid token. User not found.
    """
    @pytest.mark.asyncio
    async def test_tc013_token_unknown_user(self, client: AsyncClient):
        """TC-013: Token whose subject does not exist"""
        token = create_access_token("missing-user-id")

        response = await client.get("/api/v1/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token. User not found."

    @pytest.mark.asyncio
    async def test_tc013b_profile_summary(self, authenticated_user):
        """TC-013b: Profile summary for a valid token"""
        client, user = authenticated_user

        response = await client.get("/api/v1/profile")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == user.id
        assert data["country_code"] == "MA"
        assert data["roles"] == ["user"]


class TestConfirmedSync:
    """
    Test Case TC-014: Sync Local User from 1Confirmed Token
    Description: Verify that credit and verification flags are refreshed from the provider profile
    Expected Result: Returns 200 with the updated credit
    """
    @pytest.mark.asyncio
    async def test_tc014_sync_confirmed(self, client: AsyncClient, make_user):
        """TC-014: Sync local user"""
        user = await make_user(confirmed_token="tok-sync")
        profile = {"credit": {"credit": 900}, "two_factor_enabled": True, "phone_verified_at": None}

        with patch("app.services.auth_service.fetch_confirmed_user", new=AsyncMock(return_value=profile)):
            response = await client.post("/api/v1/sync-confirmed", json={"confirmed_token": "tok-sync"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == user.id
        assert data["credit"] == 900
        assert data["two_factor_enabled"] is True

    @pytest.mark.asyncio
    async def test_tc014b_sync_requires_token(self, client: AsyncClient):
        """TC-014b: Sync without a token"""
        response = await client.post("/api/v1/sync-confirmed", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Confirmed token required"

    @pytest.mark.asyncio
    async def test_tc014c_sync_unknown_token(self, client: AsyncClient):
        """TC-014c: Token not held by any local user"""
        with patch("app.services.auth_service.fetch_confirmed_user", new=AsyncMock(return_value={})):
            response = await client.post("/api/v1/sync-confirmed", json={"confirmed_token": "nobody"})

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_tc014d_sync_provider_failure(self, client: AsyncClient):
        """TC-014d: Provider failure during sync"""
        error = ConfirmedAPIError("Unauthenticated.", status_code=401, details={"success": False})
        with patch("app.services.auth_service.fetch_confirmed_user", new=AsyncMock(side_effect=error)):
            response = await client.post("/api/v1/sync-confirmed", json={"confirmed_token": "bad"})

        assert response.status_code == 500
        assert response.json()["message"] == "Sync failed"
