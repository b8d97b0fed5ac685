"""Tests for the profile endpoints."""

import pytest


@pytest.mark.asyncio
async def test_get_profile(client, make_user, authenticate):
    user = await make_user(email="hana@example.com", bio="Knits", location="Leeds", community_score=42)
    authenticate(client, user)

    response = await client.get("/api/auth/profile")

    assert response.status_code == 200
    profile = response.json()["user"]
    assert profile["id"] == str(user.id)
    assert profile["email"] == "hana@example.com"
    assert profile["bio"] == "Knits"
    assert profile["location"] == "Leeds"
    assert profile["communityScore"] == 42
    assert "joinedAt" in profile
    assert "passwordHash" not in profile
    assert "emailVerificationToken" not in profile


@pytest.mark.asyncio
async def test_update_profile_sanitizes_fields(client, make_user, authenticate, csrf_headers):
    user = await make_user()
    token = authenticate(client, user)

    response = await client.put(
        "/api/auth/profile",
        json={"bio": "<script>alert(1)</script> I garden", "location": "  York  ", "phone": "0123"},
        headers=csrf_headers(token),
    )

    assert response.status_code == 200
    profile = response.json()["user"]
    assert "<" not in profile["bio"]
    assert profile["bio"] == "scriptalert(1)/script I garden"
    assert profile["location"] == "York"
    assert profile["phone"] == "0123"


@pytest.mark.asyncio
async def test_update_profile_ignores_protected_fields(client, make_user, authenticate, csrf_headers, test_session):
    user = await make_user(email="ivan@example.com")
    token = authenticate(client, user)

    response = await client.put(
        "/api/auth/profile",
        json={
            "firstName": "Ivan",
            "email": "attacker@example.com",
            "communityScore": 9999,
            "isEmailVerified": False,
            "passwordHash": "x",
        },
        headers=csrf_headers(token),
    )

    assert response.status_code == 200
    await test_session.refresh(user)
    assert user.first_name == "Ivan"
    assert user.email == "ivan@example.com"
    assert user.community_score == 0
    assert user.is_email_verified is True
    assert user.password_hash != "x"


@pytest.mark.asyncio
async def test_update_profile_rejects_blank_name(client, make_user, authenticate, csrf_headers):
    user = await make_user()
    token = authenticate(client, user)

    response = await client.put("/api/auth/profile", json={"firstName": "<>"}, headers=csrf_headers(token))

    assert response.status_code == 400
    assert response.json() == {"error": "First name cannot be empty"}


@pytest.mark.asyncio
async def test_profile_for_deleted_user(client, make_user, authenticate, test_session):
    user = await make_user()
    authenticate(client, user)
    await test_session.delete(user)
    await test_session.commit()

    response = await client.get("/api/auth/profile")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_update_profile_for_deleted_user(client, make_user, authenticate, csrf_headers, test_session):
    user = await make_user()
    token = authenticate(client, user)
    await test_session.delete(user)
    await test_session.commit()

    response = await client.put("/api/auth/profile", json={"bio": "still here?"}, headers=csrf_headers(token))

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
