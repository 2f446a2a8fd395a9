from __future__ import annotations

from pathlib import Path

import pytest

from conftest import USER, body_of, make_token, reply
from inventory_client_sdk.auth_store import TokenStore
from inventory_client_sdk.exceptions import AuthError
from inventory_client_sdk.models import StoredSession, UserResponse
from inventory_client_sdk.session import ApiSession


@pytest.fixture()
def store(tmp_path: Path) -> TokenStore:
    store = TokenStore(app_name="inventory-test", filename="session.json")
    store._path = lambda: tmp_path / "session.json"  # type: ignore[method-assign]
    return store


@pytest.fixture()
def session(config, store, http) -> ApiSession:
    return ApiSession(config, store=store, http_client=http)


def test_token_store_handles_corruption(store: TokenStore) -> None:
    store._path().write_text("{not-json")

    assert store.load() is None
    assert not store._path().exists()


def test_token_store_round_trips_user(store: TokenStore) -> None:
    user = UserResponse.model_validate(USER)
    store.save(StoredSession(access_token="a", refresh_token="r", user=user))

    loaded = store.load()

    assert loaded is not None
    assert loaded.refresh_token == "r"
    assert loaded.user == user


def test_token_store_rejects_invalid_shape(store: TokenStore) -> None:
    store._path().write_text('{"access_token": "a"}')

    assert store.load() is None
    assert not store._path().exists()


@pytest.mark.asyncio
async def test_sign_in_persists_tokens_and_user(api, session, store) -> None:
    access, refresh = make_token(), make_token(expires_in=None)
    api.add("POST", "/api/auth/login", reply(200, {"accessToken": access, "refreshToken": refresh}))
    api.add("GET", "/api/auth/me", reply(200, USER))

    user = await session.sign_in("demo@example.com", "secret")

    stored = store.load()
    assert user.id == "user-1"
    assert session.is_authenticated
    assert stored is not None
    assert (stored.access_token, stored.refresh_token) == (access, refresh)
    assert stored.user == user


@pytest.mark.asyncio
async def test_sign_up_requires_both_tokens(api, session, store) -> None:
    api.add("POST", "/api/auth/signup", reply(200, {"accessToken": make_token()}))

    with pytest.raises(AuthError, match="missing accessToken or refreshToken"):
        await session.sign_up("demo@example.com", "secret")

    assert session.client.get_tokens().is_empty
    assert store.load() is None
    assert api.calls_to("GET", "/api/auth/me") == []


@pytest.mark.asyncio
async def test_restore_without_stored_session(api, session) -> None:
    assert await session.restore() is None
    assert api.calls == []


@pytest.mark.asyncio
async def test_restore_with_expired_refresh_token_clears_store(api, session, store) -> None:
    store.save(StoredSession(access_token=make_token(), refresh_token=make_token(expires_in=-10)))

    assert await session.restore() is None
    assert store.load() is None
    assert api.calls == []


@pytest.mark.asyncio
async def test_restore_with_valid_tokens_verifies_with_me(api, session, store) -> None:
    access = make_token()
    store.save(StoredSession(access_token=access, refresh_token=make_token(expires_in=None)))
    api.add("GET", "/api/auth/me", reply(200, USER))

    user = await session.restore()

    assert user is not None
    assert [call.url.path for call in api.calls] == ["/api/auth/me"]
    assert session.client.get_tokens().access_token == access
    assert store.load().user == user


@pytest.mark.asyncio
async def test_restore_sends_opaque_access_token_without_refreshing(api, session, store) -> None:
    store.save(StoredSession(access_token="opaque-access", refresh_token=make_token(expires_in=None)))
    api.add("GET", "/api/auth/me", reply(200, USER))

    user = await session.restore()

    assert user is not None
    assert [call.url.path for call in api.calls] == ["/api/auth/me"]
    assert api.calls[0].headers["Authorization"] == "Bearer opaque-access"
    assert api.calls_to("POST", "/api/auth/refresh") == []


@pytest.mark.asyncio
async def test_restore_refreshes_expired_access_token_and_persists(api, session, store) -> None:
    refresh, fresh = make_token(expires_in=86400), make_token()
    store.save(StoredSession(access_token=make_token(expires_in=-10), refresh_token=refresh))
    api.add("POST", "/api/auth/refresh", reply(200, {"accessToken": fresh}))
    api.add("GET", "/api/auth/me", reply(200, USER))

    user = await session.restore()

    stored = store.load()
    assert user is not None
    assert body_of(api.calls[0]) == {"refreshToken": refresh}
    assert (stored.access_token, stored.refresh_token) == (fresh, refresh)


@pytest.mark.asyncio
async def test_restore_with_failed_refresh_signs_out(api, session, store) -> None:
    store.save(StoredSession(access_token=None, refresh_token=make_token(expires_in=None)))
    api.add("POST", "/api/auth/refresh", reply(401, {"message": "revoked"}))

    assert await session.restore() is None
    assert store.load() is None
    assert not session.is_authenticated


@pytest.mark.asyncio
async def test_rotation_during_request_is_persisted(api, session, store) -> None:
    user = UserResponse.model_validate(USER)
    store.save(StoredSession(access_token="old", refresh_token="refresh-1", user=user))
    session.client.set_tokens(make_token(expires_in=-10), "refresh-1")
    fresh = make_token()
    api.add("POST", "/api/auth/refresh", reply(200, {"accessToken": fresh, "refreshToken": "refresh-2"}))
    api.add("POST", "/api/images/upload", reply(200, {"url": "https://cdn.example.com/a.png"}))

    await session.client.upload_image("aGVsbG8=")

    stored = store.load()
    assert (stored.access_token, stored.refresh_token) == (fresh, "refresh-2")
    assert stored.user == user


@pytest.mark.asyncio
async def test_sign_out_revokes_and_clears(api, session, store) -> None:
    session.client.set_tokens(make_token(), "refresh-1")
    store.save(StoredSession(access_token="a", refresh_token="refresh-1"))
    api.add("POST", "/api/auth/logout", reply(204))

    await session.sign_out()

    assert body_of(api.calls[0]) == {"refreshToken": "refresh-1"}
    assert session.client.get_tokens().is_empty
    assert store.load() is None


@pytest.mark.asyncio
async def test_sign_out_succeeds_locally_when_logout_call_fails(api, session, store) -> None:
    session.client.set_tokens(make_token(), "refresh-1")
    store.save(StoredSession(access_token="a", refresh_token="refresh-1"))
    api.add("POST", "/api/auth/logout", reply(500, text="down"))

    await session.sign_out()

    assert session.client.get_tokens().is_empty
    assert store.load() is None
