"""End-to-end tests for the /api/auth routes and the gated API."""

from keygate.core.modules.session.models import SESSION_TTL

COOKIE = "keygate_session"


def cookie_header(token: str) -> dict[str, str]:
    return {"Cookie": f"{COOKIE}={token}"}


async def login(client, api_key) -> str:
    response = await client.post("/api/auth/login", json={"apiKey": api_key})
    assert response.status_code == 200
    client.cookies.clear()
    return response.json()["token"]


class TestStatus:
    """GET /api/auth/status"""

    async def test_before_login(self, client):
        response = await client.get("/api/auth/status")

        assert response.status_code == 200
        assert response.json() == {"success": True, "authenticated": False, "required": True}

    async def test_after_login(self, client, api_key):
        token = await login(client, api_key)

        response = await client.get("/api/auth/status", headers=cookie_header(token))

        assert response.json() == {"success": True, "authenticated": True, "required": True}

    async def test_never_rejects_bad_credentials(self, client):
        response = await client.get("/api/auth/status", headers={"X-API-Key": "wrong-key"})

        assert response.status_code == 200
        assert response.json()["authenticated"] is False

    async def test_api_key_header(self, client, api_key):
        response = await client.get("/api/auth/status", headers={"X-API-Key": api_key})

        assert response.json()["authenticated"] is True


class TestLogin:
    """POST /api/auth/login"""

    async def test_missing_key(self, client):
        response = await client.post("/api/auth/login", json={})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "API key is required."}

    async def test_empty_key(self, client):
        response = await client.post("/api/auth/login", json={"apiKey": ""})

        assert response.status_code == 400

    async def test_no_body(self, client):
        response = await client.post("/api/auth/login")

        assert response.status_code == 400
        assert response.json()["error"] == "API key is required."

    async def test_non_string_key(self, client):
        response = await client.post("/api/auth/login", json={"apiKey": 12345})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("Invalid request: apiKey:")
        assert "set-cookie" not in response.headers

    async def test_malformed_json(self, client):
        response = await client.post(
            "/api/auth/login", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid request: malformed JSON body."}

    async def test_wrong_key_sets_no_cookie(self, client):
        response = await client.post("/api/auth/login", json={"apiKey": "wrong-key"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid API key."}
        assert "set-cookie" not in response.headers

    async def test_right_key(self, client, api_key):
        response = await client.post("/api/auth/login", json={"apiKey": api_key})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Logged in successfully."
        assert body["token"]

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{COOKIE}={body['token']};")
        assert "HttpOnly" in set_cookie
        assert "SameSite=strict" in set_cookie
        assert "Path=/" in set_cookie
        assert f"Max-Age={int(SESSION_TTL.total_seconds())}" in set_cookie
        assert "Secure" not in set_cookie

    async def test_secure_cookie_in_production(self, client, config, api_key):
        config.production = True

        response = await client.post("/api/auth/login", json={"apiKey": api_key})

        assert "Secure" in response.headers["set-cookie"]

    async def test_each_login_gets_a_new_session(self, client, api_key):
        first = await login(client, api_key)
        second = await login(client, api_key)

        assert first != second


class TestToken:
    """GET /api/auth/token"""

    async def test_unauthenticated(self, client):
        response = await client.get("/api/auth/token")

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Authentication required."}

    async def test_stale_session(self, client):
        response = await client.get("/api/auth/token", headers=cookie_header("stale"))

        assert response.status_code == 401

    async def test_with_session_cookie(self, client, api_key):
        token = await login(client, api_key)

        response = await client.get("/api/auth/token", headers=cookie_header(token))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["expiresIn"] == 300
        assert body["token"] != token

    async def test_with_session_header(self, client, api_key):
        token = await login(client, api_key)

        response = await client.get("/api/auth/token", headers={"X-Session-Token": token})

        assert response.status_code == 200

    async def test_with_api_key(self, client, api_key):
        response = await client.get("/api/auth/token", headers={"X-API-Key": api_key})

        assert response.status_code == 200
        assert response.json()["expiresIn"] == 300

    async def test_connection_token_is_not_a_session(self, client, api_key):
        issued = (await client.get("/api/auth/token", headers={"X-API-Key": api_key})).json()["token"]

        response = await client.get("/api/health/detailed", headers=cookie_header(issued))

        assert response.status_code == 401


class TestLogout:
    """POST /api/auth/logout"""

    async def test_logout_invalidates_session(self, client, api_key):
        token = await login(client, api_key)
        assert (await client.get("/api/health/detailed", headers=cookie_header(token))).status_code == 200

        response = await client.post("/api/auth/logout", headers=cookie_header(token))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully."}
        stale = await client.get("/api/health/detailed", headers=cookie_header(token))
        assert stale.status_code == 401
        assert stale.json() == {"success": False, "error": "Authentication required."}

    async def test_logout_clears_cookie(self, client, api_key):
        token = await login(client, api_key)

        response = await client.post("/api/auth/logout", headers=cookie_header(token))

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f'{COOKIE}="";') or set_cookie.startswith(f"{COOKIE}=;")
        assert "Max-Age=0" in set_cookie

    async def test_logout_twice(self, client, api_key):
        token = await login(client, api_key)

        first = await client.post("/api/auth/logout", headers=cookie_header(token))
        second = await client.post("/api/auth/logout", headers=cookie_header(token))

        assert first.status_code == 200
        assert second.status_code == 200

    async def test_logout_without_session(self, client):
        response = await client.post("/api/auth/logout")

        assert response.status_code == 200

    async def test_logout_with_session_header(self, client, api_key):
        token = await login(client, api_key)

        await client.post("/api/auth/logout", headers={"X-Session-Token": token})

        response = await client.get("/api/auth/status", headers={"X-Session-Token": token})
        assert response.json()["authenticated"] is False

    async def test_status_after_logout(self, client, api_key):
        token = await login(client, api_key)
        await client.post("/api/auth/logout", headers=cookie_header(token))

        response = await client.get("/api/auth/status", headers=cookie_header(token))

        assert response.json()["authenticated"] is False


class TestSessionExpiry:
    """Sessions end after their fixed lifetime."""

    async def test_expired_cookie_rejected(self, client, api_key, clock):
        token = await login(client, api_key)
        clock.advance(seconds=SESSION_TTL.total_seconds())

        response = await client.get("/api/health/detailed", headers=cookie_header(token))

        assert response.status_code == 401
