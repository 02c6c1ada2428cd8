"""Tests for sign-in, session and profile endpoints."""
from collections.abc import Awaitable, Callable
from unittest.mock import AsyncMock, patch

import pytest
from authlib.integrations.base_client.errors import OAuthError
from httpx import AsyncClient

from api.main import app
from api.routers import auth as auth_router
from core.config import Settings, get_settings
from models import Role, User
from services.session_service import read_token


async def _register(client: AsyncClient, **overrides: object) -> dict:
    payload = {
        "name": "Grace",
        "email": "grace@inkwell.io",
        "password": "hopper1",
        "role": "PUBLISHER",
    }
    payload.update(overrides)
    return (await client.post("/auth/register", json=payload)).json()


async def _sign_in(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post("/auth/signin", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()["access_token"]


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestRegister:
    """Tests for POST /auth/register."""

    async def test__register__returns_id_email_role(self, client: AsyncClient) -> None:
        """A valid registration returns the new account's id, email and role."""
        response = await client.post(
            "/auth/register",
            json={"name": "Grace", "email": "grace@inkwell.io", "password": "hopper1", "role": "READER"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "grace@inkwell.io"
        assert data["role"] == "READER"
        assert isinstance(data["id"], int)
        assert "password" not in data

    async def test__register__duplicate_email_409(self, client: AsyncClient) -> None:
        """Registering an email twice fails with email_in_use."""
        await _register(client)
        response = await client.post(
            "/auth/register",
            json={"name": "Other", "email": "grace@inkwell.io", "password": "another", "role": "READER"},
        )
        assert response.status_code == 409
        assert response.json()["code"] == "email_in_use"

    @pytest.mark.parametrize(
        ("field", "value"),
        [("name", "G"), ("email", "not-an-email"), ("password", "12345"), ("role", "ADMIN")],
    )
    async def test__register__validation_errors(
        self, client: AsyncClient, field: str, value: str,
    ) -> None:
        """Malformed input is rejected with 422 naming the offending field."""
        payload = {"name": "Grace", "email": "grace@inkwell.io", "password": "hopper1", "role": "READER"}
        payload[field] = value
        response = await client.post("/auth/register", json=payload)
        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"][-1] == field


class TestSignIn:
    """Tests for POST /auth/signin."""

    async def test__signin__token_carries_registered_role(self, client: AsyncClient) -> None:
        """Signing in after registration yields a session with the registered role."""
        registered = await _register(client)
        response = await client.post(
            "/auth/signin", json={"email": "grace@inkwell.io", "password": "hopper1"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["session"]["user"] == {
            "id": registered["id"],
            "name": "Grace",
            "image": None,
            "role": "PUBLISHER",
            "onboarded": True,
        }

    async def test__signin__wrong_password_same_as_unknown_email(self, client: AsyncClient) -> None:
        """The two failure causes are indistinguishable to the caller."""
        await _register(client)
        wrong = await client.post(
            "/auth/signin", json={"email": "grace@inkwell.io", "password": "wrong-pw"},
        )
        unknown = await client.post(
            "/auth/signin", json={"email": "nobody@inkwell.io", "password": "hopper1"},
        )
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()


class TestSession:
    """Tests for session materialization and the explicit update trigger."""

    async def test__session__none_without_token(self, client: AsyncClient) -> None:
        """No bearer token materializes as null."""
        response = await client.get("/auth/session")
        assert response.status_code == 200
        assert response.json() is None

    async def test__session__tampered_token_is_no_session(self, client: AsyncClient) -> None:
        """A token whose signature does not verify is ignored."""
        await _register(client)
        token = await _sign_in(client, "grace@inkwell.io", "hopper1")
        response = await client.get("/auth/session", headers=_bearer(token[:-4] + "AAAA"))
        assert response.json() is None

    async def test__session__not_rederived_without_trigger(
        self, client: AsyncClient, create_user: Callable[..., Awaitable[User]],
    ) -> None:
        """Storage changes stay invisible in the token until the update trigger fires."""
        await create_user(email="new@inkwell.io", onboarded=False)
        token = await _sign_in(client, "new@inkwell.io", "correct-horse")

        await client.post("/auth/role", json={"role": "PUBLISHER"}, headers=_bearer(token))

        session = (await client.get("/auth/session", headers=_bearer(token))).json()
        assert session["user"]["role"] == "READER"
        assert session["user"]["onboarded"] is False

    async def test__update_trigger__role_change_wins_over_stale_fields(
        self, client: AsyncClient, create_user: Callable[..., Awaitable[User]],
    ) -> None:
        """After role selection, the re-synced token reflects storage, not the client's patch."""
        user = await create_user(email="new@inkwell.io", name="Before", onboarded=False)
        token = await _sign_in(client, "new@inkwell.io", "correct-horse")

        await client.post("/auth/role", json={"role": "PUBLISHER"}, headers=_bearer(token))
        response = await client.post(
            "/auth/session/update",
            json={"name": "Optimistic Name"},
            headers=_bearer(token),
        )

        assert response.status_code == 200
        new_token = response.json()["access_token"]
        session = (await client.get("/auth/session", headers=_bearer(new_token))).json()
        assert session["user"] == {
            "id": user.id,
            "name": "Before",
            "image": None,
            "role": "PUBLISHER",
            "onboarded": True,
        }

    async def test__update_trigger__after_name_change(
        self, client: AsyncClient, reader: User, auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """Profile edit followed by the trigger puts the stored name in the token."""
        headers = auth_headers(reader)
        await client.patch("/auth/profile", json={"name": "Renamed"}, headers=headers)

        response = await client.post(
            "/auth/session/update", json={"name": "Renamed"}, headers=headers,
        )

        snapshot = read_token(response.json()["access_token"])
        assert snapshot is not None
        assert snapshot.name == "Renamed"
        assert snapshot.id == reader.id

    async def test__update_trigger__without_body(
        self, client: AsyncClient, reader: User, auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """The trigger works with no client-supplied fields at all."""
        response = await client.post("/auth/session/update", headers=auth_headers(reader))
        assert response.status_code == 200
        assert response.json()["session"]["user"]["name"] == "Reader"

    async def test__update_trigger__requires_session(self, client: AsyncClient) -> None:
        """The trigger is an authenticated procedure."""
        response = await client.post("/auth/session/update")
        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"

    async def test__update_trigger__deleted_user(
        self, client: AsyncClient, auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """A token for a user that no longer exists fails generically."""
        ghost = User(id=9999, email="ghost@inkwell.io", name="Ghost", role=Role.READER, onboarded=True)
        response = await client.post("/auth/session/update", headers=auth_headers(ghost))
        assert response.status_code == 401
        assert response.json()["code"] == "user_not_found"


class TestLanding:
    """Tests for GET /auth/landing."""

    async def test__landing__anonymous_goes_to_sign_in(self, client: AsyncClient) -> None:
        """No session routes to sign-in."""
        response = await client.get("/auth/landing")
        assert response.json() == {"destination": "/auth/signin"}

    async def test__landing__not_onboarded_goes_to_role_selection(
        self,
        client: AsyncClient,
        create_user: Callable[..., Awaitable[User]],
        auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """A session without a confirmed role must choose one first."""
        user = await create_user(onboarded=False)
        response = await client.get("/auth/landing", headers=auth_headers(user))
        assert response.json() == {"destination": "/auth/choose-role"}

    async def test__landing__by_role(
        self,
        client: AsyncClient,
        reader: User,
        publisher: User,
        auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """Onboarded users go to their role's area."""
        reader_landing = await client.get("/auth/landing", headers=auth_headers(reader))
        publisher_landing = await client.get("/auth/landing", headers=auth_headers(publisher))
        assert reader_landing.json() == {"destination": "/feed"}
        assert publisher_landing.json() == {"destination": "/publisher/dashboard"}

    async def test__landing__reads_storage_not_token(
        self,
        client: AsyncClient,
        create_user: Callable[..., Awaitable[User]],
        auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """A stale token is routed by the stored role."""
        user = await create_user(onboarded=False)
        stale_headers = auth_headers(user)
        await client.post("/auth/role", json={"role": "PUBLISHER"}, headers=stale_headers)

        response = await client.get("/auth/landing", headers=stale_headers)

        assert response.json() == {"destination": "/publisher/dashboard"}


class TestProfile:
    """Tests for profile endpoints."""

    async def test__set_role__then_profile_reflects_it(
        self,
        client: AsyncClient,
        create_user: Callable[..., Awaitable[User]],
        auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """Role selection is visible on the next profile read."""
        user = await create_user(onboarded=False)
        headers = auth_headers(user)

        response = await client.post("/auth/role", json={"role": "PUBLISHER"}, headers=headers)
        assert response.json() == {"role": "PUBLISHER"}

        profile = (await client.get("/auth/profile", headers=headers)).json()
        assert profile["role"] == "PUBLISHER"

    async def test__profile__shape(
        self, client: AsyncClient, reader: User, auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """Profile exposes has_password and providers but never the hash."""
        response = await client.get("/auth/profile", headers=auth_headers(reader))
        assert response.status_code == 200
        data = response.json()
        assert data["has_password"] is True
        assert data["providers"] == []
        assert "password_hash" not in data

    async def test__profile__requires_session(self, client: AsyncClient) -> None:
        """Profile read is authenticated."""
        response = await client.get("/auth/profile")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test__update_profile__short_name_rejected(
        self, client: AsyncClient, reader: User, auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """Names shorter than two characters fail validation."""
        response = await client.patch(
            "/auth/profile", json={"name": "X"}, headers=auth_headers(reader),
        )
        assert response.status_code == 422

    async def test__update_avatar__set_and_clear(
        self, client: AsyncClient, reader: User, auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """Avatar can be pointed at a URL and cleared with null."""
        headers = auth_headers(reader)
        url = "https://cdn.inkwell.io/avatars/1.png"

        response = await client.put("/auth/profile/avatar", json={"image": url}, headers=headers)
        assert response.json() == {"success": True}
        assert (await client.get("/auth/profile", headers=headers)).json()["image"] == url

        await client.put("/auth/profile/avatar", json={"image": None}, headers=headers)
        assert (await client.get("/auth/profile", headers=headers)).json()["image"] is None

    async def test__change_password__error_codes(
        self, client: AsyncClient, reader: User, auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """Missing and incorrect current passwords are distinct errors."""
        headers = auth_headers(reader)

        missing = await client.post(
            "/auth/password", json={"new_password": "new-secret"}, headers=headers,
        )
        incorrect = await client.post(
            "/auth/password",
            json={"current_password": "nope", "new_password": "new-secret"},
            headers=headers,
        )

        assert missing.json()["code"] == "current_password_required"
        assert incorrect.json()["code"] == "current_password_incorrect"

    async def test__change_password__then_sign_in(
        self, client: AsyncClient, reader: User, auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """The new password works for credential sign-in."""
        response = await client.post(
            "/auth/password",
            json={"current_password": "correct-horse", "new_password": "battery-staple"},
            headers=auth_headers(reader),
        )
        assert response.json() == {"success": True}
        await _sign_in(client, reader.email, "battery-staple")


class TestGoogleOAuth:
    """Tests for the Google sign-in flow with the provider exchange stubbed."""

    @pytest.fixture
    def google_settings(self, client: AsyncClient) -> Settings:  # noqa: ARG002
        """Settings with Google credentials configured, installed over the app's."""
        settings = get_settings().model_copy(
            update={"google_client_id": "client-id", "google_client_secret": "client-secret"},
        )
        app.dependency_overrides[get_settings] = lambda: settings
        return settings

    async def test__google_login__not_configured(self, client: AsyncClient) -> None:
        """Without credentials the provider is unavailable."""
        response = await client.get("/auth/google/login")
        assert response.status_code == 501

    async def test__google_login__redirects_with_state_cookie(
        self,
        client: AsyncClient,
        google_settings: Settings,  # noqa: ARG002
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Login uses the cached discovery document and stores the state in a cookie."""
        monkeypatch.setattr(
            auth_router,
            "_google_metadata",
            {"authorization_endpoint": "https://accounts.example/authorize"},
        )

        response = await client.get("/auth/google/login")

        assert response.status_code == 307
        location = response.headers["location"]
        assert location.startswith("https://accounts.example/authorize?")
        assert "client_id=client-id" in location
        assert f"state={response.cookies['oauth_state']}" in location

    async def test__google_callback__rejects_state_mismatch(
        self, client: AsyncClient, google_settings: Settings,  # noqa: ARG002
    ) -> None:
        """The state query parameter must match the cookie."""
        client.cookies.set("oauth_state", "expected")
        response = await client.get("/auth/google/callback", params={"state": "other", "code": "c"})
        assert response.status_code == 400

    async def test__google_callback__consent_declined_redirects_to_sign_in(
        self, client: AsyncClient, google_settings: Settings,
    ) -> None:
        """A cancelled consent screen sends the user back to sign-in without a token exchange."""
        client.cookies.set("oauth_state", "xyz")
        with patch("api.routers.auth.fetch_google_userinfo", new_callable=AsyncMock) as fetch:
            response = await client.get(
                "/auth/google/callback", params={"state": "xyz", "error": "access_denied"},
            )

        assert response.status_code == 302
        assert response.headers["location"] == (
            f"{google_settings.frontend_url}/auth/signin?error=access_denied"
        )
        fetch.assert_not_awaited()

    async def test__google_callback__failed_exchange_redirects_to_sign_in(
        self, client: AsyncClient, google_settings: Settings,
    ) -> None:
        """A provider error during the code exchange is not a server error."""
        client.cookies.set("oauth_state", "xyz")
        with patch(
            "api.routers.auth.fetch_google_userinfo",
            new_callable=AsyncMock,
            side_effect=OAuthError(error="invalid_grant"),
        ):
            response = await client.get(
                "/auth/google/callback", params={"state": "xyz", "code": "stale"},
            )

        assert response.status_code == 302
        assert response.headers["location"] == (
            f"{google_settings.frontend_url}/auth/signin?error=invalid_grant"
        )

    async def test__google_callback__provisions_user_and_issues_token(
        self, client: AsyncClient, google_settings: Settings,
    ) -> None:
        """First Google sign-in creates a non-onboarded reader and links the provider."""
        client.cookies.set("oauth_state", "xyz")
        userinfo = {"email": "gmail@inkwell.io", "name": "G User", "sub": "google-123"}
        with patch(
            "api.routers.auth.fetch_google_userinfo",
            new_callable=AsyncMock,
            return_value=userinfo,
        ):
            response = await client.get(
                "/auth/google/callback", params={"state": "xyz", "code": "c"},
            )

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith(f"{google_settings.frontend_url}/auth/callback#token=")
        token = location.split("#token=", 1)[1]
        snapshot = read_token(token)
        assert snapshot is not None
        assert snapshot.role == Role.READER
        assert snapshot.onboarded is False

        profile = (await client.get("/auth/profile", headers=_bearer(token))).json()
        assert profile["providers"] == ["google"]
        assert profile["has_password"] is False

    async def test__google_callback__idempotent(
        self, client: AsyncClient, google_settings: Settings,  # noqa: ARG002
    ) -> None:
        """Signing in twice with the same Google email resolves to the same user."""
        userinfo = {"email": "again@inkwell.io", "name": "Again"}
        ids = []
        with patch(
            "api.routers.auth.fetch_google_userinfo",
            new_callable=AsyncMock,
            return_value=userinfo,
        ):
            for _ in range(2):
                client.cookies.set("oauth_state", "s")
                response = await client.get(
                    "/auth/google/callback", params={"state": "s", "code": "c"},
                )
                snapshot = read_token(response.headers["location"].split("#token=", 1)[1])
                assert snapshot is not None
                ids.append(snapshot.id)

        assert ids[0] == ids[1]
