"""Tests for the HTTP surface."""
import pytest
from httpx import AsyncClient

PASSWORD = "s3cret-pass"


@pytest.mark.asyncio
async def test_status(client: AsyncClient):
    response = await client.get("/api/status")
    assert response.status_code == 200
    assert response.json() == {"status": "success"}


@pytest.mark.asyncio
async def test_register_activate_login_flow(client: AsyncClient, mailer, store):
    response = await client.post(
        "/api/auth/register",
        json={"name": "Ann", "email": "Ann@Example.com", "password": PASSWORD},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "ann@example.com"
    assert body["active"] is False
    assert "password_hash" not in body
    assert "activation_key" not in body

    response = await client.post("/api/auth/login", json={"email": "ann@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["code"] == "not_activated"

    key = (await store.find_by_email("ann@example.com")).activation_key
    assert key in mailer.sent[0][2]

    response = await client.get(f"/api/auth/verify-email-id?key={key}", follow_redirects=False)
    assert response.status_code == 303
    assert "verified" in response.headers["location"]

    response = await client.post("/api/auth/login", json={"email": "ann@example.com", "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["access_token"]
    assert response.json()["user"]["active"] is True


@pytest.mark.asyncio
async def test_replayed_activation_link_reports_failure(client: AsyncClient):
    response = await client.get("/api/auth/verify-email-id?key=never-issued", follow_redirects=False)
    assert response.status_code == 303
    assert "Invalid" in response.headers["location"]


@pytest.mark.asyncio
async def test_activation_link_without_key_reports_failure(client: AsyncClient):
    response = await client.get("/api/auth/verify-email-id", follow_redirects=False)
    assert response.status_code == 303
    assert "Invalid" in response.headers["location"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, make_user):
    await make_user()
    response = await client.post(
        "/api/auth/register",
        json={"name": "Ann", "email": "ann@example.com", "password": PASSWORD},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "email_taken"


@pytest.mark.asyncio
async def test_login_errors_map_to_stable_codes(client: AsyncClient, make_user):
    await make_user()
    response = await client.post("/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
    assert (response.status_code, response.json()["code"]) == (404, "not_found")

    response = await client.post("/api/auth/login", json={"email": "ann@example.com", "password": "wrong-password"})
    assert (response.status_code, response.json()["code"]) == (401, "invalid_credentials")


@pytest.mark.asyncio
async def test_login_registers_push_address(client: AsyncClient, make_user, store, login):
    user = await make_user()
    headers = await login("ann@example.com", fcm_token="device-1")

    assert (await store.find_by_id(user.id)).fcm_token == "device-1"

    response = await client.get("/api/user/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["email"] == "ann@example.com"


@pytest.mark.asyncio
async def test_me_requires_authentication(client: AsyncClient):
    response = await client.get("/api/user/me")
    assert response.status_code == 401
    assert response.json()["code"] == "not_authenticated"


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, make_user, login):
    await make_user()
    headers = await login("ann@example.com")

    response = await client.post(
        "/api/auth/change-password",
        json={"oldPassword": PASSWORD, "newPassword": PASSWORD},
        headers=headers,
    )
    assert (response.status_code, response.json()["code"]) == (400, "no_op_change")

    response = await client.post(
        "/api/auth/change-password",
        json={"oldPassword": PASSWORD, "newPassword": "brand-new-pass"},
        headers=headers,
    )
    assert response.status_code == 200

    await login("ann@example.com", password="brand-new-pass")


@pytest.mark.asyncio
async def test_forgot_and_reset_password(client: AsyncClient, make_user, store, login):
    user = await make_user()

    response = await client.post("/api/auth/forgot-password", json={"email": "ann@example.com"})
    assert response.status_code == 200
    key = (await store.find_by_id(user.id)).forgot_password_key

    page = await client.get(f"/verify-password-key?key={key}")
    assert page.status_code == 200
    assert f"/api/auth/reset-password?key={key}" in page.text

    response = await client.post(
        f"/api/auth/reset-password?key={key}",
        json={"newPassword": "brand-new-pass", "confirmPassword": "other-pass"},
    )
    assert (response.status_code, response.json()["code"]) == (400, "mismatch")

    response = await client.post(
        f"/api/auth/reset-password?key={key}",
        json={"newPassword": "brand-new-pass", "confirmPassword": "brand-new-pass"},
    )
    assert response.status_code == 200

    response = await client.post(
        f"/api/auth/reset-password?key={key}",
        json={"newPassword": "another-pass", "confirmPassword": "another-pass"},
    )
    assert (response.status_code, response.json()["code"]) == (404, "not_found")

    await login("ann@example.com", password="brand-new-pass")


@pytest.mark.asyncio
async def test_send_message_pushes_to_receiver(client: AsyncClient, make_user, login, push_sender):
    await make_user()
    bob = await make_user(email="bob@example.com", name="Bob", fcm_token="bob-device")
    headers = await login("ann@example.com")

    response = await client.post(
        "/api/msg/send", json={"receiverId": bob.id, "text": "hi\nhello"}, headers=headers
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"]["text"] == "hi\nhello"
    assert body["notification"]["body"] == "hello"
    assert body["notification"]["message_id"] == body["message"]["id"]
    assert body["notification"]["delivery_state"] == "sent"

    address, payload = push_sender.sent[0]
    assert address == "bob-device"
    assert payload["message"]["data"]["title"] == "Ann"
    assert payload["message"]["data"]["type"] == "message"


@pytest.mark.asyncio
async def test_send_message_to_receiver_without_device(client: AsyncClient, make_user, login, push_sender):
    await make_user()
    bob = await make_user(email="bob@example.com", name="Bob")
    headers = await login("ann@example.com")

    response = await client.post("/api/msg/send", json={"receiverId": bob.id, "text": "hello"}, headers=headers)
    assert response.status_code == 201
    assert response.json()["notification"] is None
    assert push_sender.sent == []


@pytest.mark.asyncio
async def test_start_call_sends_invitation(client: AsyncClient, make_user, login, push_sender):
    await make_user()
    bob = await make_user(email="bob@example.com", name="Bob", fcm_token="bob-device")
    headers = await login("ann@example.com")

    response = await client.post("/api/rtc/call", json={"receiverId": bob.id}, headers=headers)
    assert response.status_code == 201
    body = response.json()
    assert body["visionCode"]
    assert body["agoraToken"]
    assert body["notification"]["body"] == "Incoming call invitation"
    assert body["notification"]["delivery_state"] == "sent"

    data = push_sender.sent[0][1]["message"]["data"]
    assert data["visionCode"] == body["visionCode"]
    assert data["agoraToken"] and data["agoraToken"] != body["agoraToken"]


@pytest.mark.asyncio
async def test_start_call_records_push_failure(client: AsyncClient, make_user, login, push_sender):
    await make_user()
    bob = await make_user(email="bob@example.com", name="Bob", fcm_token="bob-device")
    headers = await login("ann@example.com")
    push_sender.fail = True

    response = await client.post("/api/rtc/call", json={"receiverId": bob.id}, headers=headers)
    assert response.status_code == 201
    assert response.json()["notification"]["delivery_state"] == "failed"


@pytest.mark.asyncio
async def test_start_call_unknown_receiver(client: AsyncClient, make_user, login):
    await make_user()
    headers = await login("ann@example.com")
    response = await client.post("/api/rtc/call", json={"receiverId": 999}, headers=headers)
    assert (response.status_code, response.json()["code"]) == (404, "not_found")


@pytest.mark.asyncio
async def test_passwords_longer_than_bcrypt_input_are_rejected(client: AsyncClient, make_user, login):
    await make_user()
    headers = await login("ann@example.com")
    # Differs from the real password only after byte 72.
    too_long = PASSWORD + "x" * (72 - len(PASSWORD)) + "tail"

    response = await client.post(
        "/api/auth/register",
        json={"name": "Bob", "email": "bob@example.com", "password": too_long},
    )
    assert response.status_code == 422

    response = await client.post(
        "/api/auth/change-password",
        json={"oldPassword": too_long, "newPassword": "brand-new-pass"},
        headers=headers,
    )
    assert response.status_code == 422

    # Multi-byte characters count by their encoded size.
    response = await client.post(
        "/api/auth/reset-password?key=whatever",
        json={"newPassword": "é" * 37, "confirmPassword": "é" * 37},
    )
    assert response.status_code == 422
    assert isinstance(response.json()["detail"], list)


@pytest.mark.asyncio
async def test_password_of_exactly_72_bytes_is_accepted(client: AsyncClient):
    response = await client.post(
        "/api/auth/register",
        json={"name": "Bob", "email": "bob@example.com", "password": "p" * 72},
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_reset_page_shows_validation_messages(client: AsyncClient):
    page = await client.get("/verify-password-key?key=abc")
    assert page.status_code == 200
    assert "data.detail[0].msg" in page.text
