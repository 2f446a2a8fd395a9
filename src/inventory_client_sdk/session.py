from __future__ import annotations

import logging

import httpx

from .api_client import AuthenticatedApiClient
from .auth_store import TokenStore
from .config import ClientConfig
from .exceptions import ApiError, AuthError
from .logger import get_logger, log_event
from .models import AuthResponse, StoredSession, UserResponse
from .tokens import is_decodable_and_expired, is_token_expired

logger = get_logger(__name__)


class ApiSession:
    """Owns one client for the lifetime of a signed-in user.

    Rotated tokens are persisted through the store; a terminal auth failure
    wipes the store so the next start begins signed out.
    """

    def __init__(
        self,
        config: ClientConfig,
        store: TokenStore | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.store = store or TokenStore()
        self.client = AuthenticatedApiClient(config, http_client)
        self.user: UserResponse | None = None
        self.client.on_token_refresh(self._persist_tokens)
        self.client.on_auth_error(self._forget)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.client.get_tokens().refresh_token)

    async def restore(self) -> UserResponse | None:
        stored = self.store.load()
        if stored is None or not stored.refresh_token:
            return None

        leeway = self.config.token_expiry_leeway_seconds
        if is_token_expired(stored.refresh_token, leeway_seconds=0, is_refresh_token=True):
            log_event(logger, "session.restore", outcome="refresh_token_expired")
            self._forget()
            return None

        self.client.set_tokens(stored.access_token, stored.refresh_token)
        if not stored.access_token or is_decodable_and_expired(stored.access_token, leeway_seconds=leeway):
            try:
                await self.client.refresh_session()
            except AuthError:
                log_event(logger, "session.restore", level=logging.WARNING, outcome="refresh_failed")
                return None

        try:
            user = await self.client.get_current_user()
        except AuthError:
            log_event(logger, "session.restore", level=logging.WARNING, outcome="rejected")
            return None
        self._remember(user)
        log_event(logger, "session.restore", outcome="success")
        return user

    async def sign_in(self, email: str, password: str) -> UserResponse:
        return await self._establish(await self.client.login(email, password))

    async def sign_up(self, email: str, password: str) -> UserResponse:
        return await self._establish(await self.client.signup(email, password))

    async def sign_out(self) -> None:
        refresh_token = self.client.get_tokens().refresh_token
        try:
            if refresh_token:
                await self.client.logout(refresh_token)
        except ApiError as exc:
            log_event(
                logger,
                "session.sign_out",
                level=logging.WARNING,
                outcome="logout_call_failed",
                error_code=exc.code,
            )
        finally:
            self.client.clear_tokens()
            self._forget()
            await self.client.aclose()

    async def _establish(self, auth: AuthResponse) -> UserResponse:
        if not auth.access_token or not auth.refresh_token:
            self.client.clear_tokens()
            raise AuthError(
                code="AUTH_INVALID_RESPONSE",
                message="Invalid auth response: missing accessToken or refreshToken",
            )
        self.client.set_tokens(auth.access_token, auth.refresh_token)
        self.store.save(StoredSession(access_token=auth.access_token, refresh_token=auth.refresh_token))
        user = await self.client.get_current_user()
        self._remember(user)
        return user

    def _remember(self, user: UserResponse) -> None:
        tokens = self.client.get_tokens()
        if tokens.refresh_token:
            self.store.save(
                StoredSession(access_token=tokens.access_token, refresh_token=tokens.refresh_token, user=user)
            )
        self.user = user

    def _persist_tokens(self, access_token: str, refresh_token: str) -> None:
        self.store.save_tokens(access_token, refresh_token)

    def _forget(self) -> None:
        self.user = None
        self.store.clear()
