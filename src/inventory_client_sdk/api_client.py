from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from .config import ClientConfig
from .error_mapper import error_from_response
from .exceptions import ApiError, AuthError, DecodeError, TransportError
from .logger import get_logger, log_event
from .models import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    SignupRequest,
    UpdateAvatarUrlRequest,
    UpdatePasswordRequest,
    UploadImageRequest,
    UploadImageResponse,
    UserResponse,
)
from .tokens import TokenPair, is_decodable_and_expired

TokenRefreshListener = Callable[[str, str], None]
AuthErrorListener = Callable[[], None]

logger = get_logger(__name__)


@dataclass(frozen=True)
class ApiRequest:
    endpoint: str
    method: str = "GET"
    body: Any = None
    requires_auth: bool = False


class AuthenticatedApiClient:
    """HTTP client that keeps a bearer token pair valid across concurrent calls.

    Requests marked ``requires_auth`` refresh the access token up front when
    its ``exp`` claim has passed, and refresh-and-retry once when the server
    answers 401. Concurrent callers share one in-flight refresh.

    Listeners:

    * ``on_token_refresh(cb)``: ``cb(access_token, refresh_token)`` runs once
      per successful refresh, after the new pair is installed.
    * ``on_auth_error(cb)``: ``cb()`` runs when the session cannot be
      restored: once per failed refresh, and once per call that is rejected
      after its retry or has no credentials at all.

    The instance is not thread-safe; share it between tasks of one event loop.
    """

    def __init__(
        self,
        config: ClientConfig,
        client: httpx.AsyncClient | None = None,
        *,
        access_token: str | None = None,
        refresh_token: str | None = None,
    ) -> None:
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=config.timeout_seconds,
            verify=config.verify_ssl,
            limits=httpx.Limits(
                max_connections=config.max_connections,
                max_keepalive_connections=config.max_connections,
            ),
        )
        self._tokens = TokenPair(access_token, refresh_token)
        self._token_refresh_listener: TokenRefreshListener | None = None
        self._auth_error_listener: AuthErrorListener | None = None
        self._refresh_task: asyncio.Task[TokenPair] | None = None

    async def __aenter__(self) -> "AuthenticatedApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def base_url(self) -> str:
        return self.config.api_base_url

    def set_tokens(self, access_token: str | None, refresh_token: str | None) -> None:
        self._tokens = TokenPair(access_token, refresh_token)

    def get_tokens(self) -> TokenPair:
        return self._tokens

    def clear_tokens(self) -> None:
        self._tokens = TokenPair()

    def on_token_refresh(self, callback: TokenRefreshListener | None) -> None:
        self._token_refresh_listener = callback

    def on_auth_error(self, callback: AuthErrorListener | None) -> None:
        self._auth_error_listener = callback

    async def login(self, email: str, password: str) -> AuthResponse:
        body = LoginRequest(email=email, password=password).to_wire()
        result = _require_auth_response(
            await self.request(ApiRequest("/api/auth/login", "POST", body), AuthResponse), "login"
        )
        self.set_tokens(result.access_token, result.refresh_token)
        return result

    async def signup(self, email: str, password: str) -> AuthResponse:
        body = SignupRequest(email=email, password=password).to_wire()
        result = _require_auth_response(
            await self.request(ApiRequest("/api/auth/signup", "POST", body), AuthResponse), "signup"
        )
        self.set_tokens(result.access_token, result.refresh_token)
        return result

    async def refresh_access_token(self, refresh_token: str) -> AuthResponse:
        """Exchange a refresh token. Does not touch the held pair."""
        body = RefreshTokenRequest(refresh_token=refresh_token).to_wire()
        return _require_auth_response(
            await self.request(ApiRequest("/api/auth/refresh", "POST", body), AuthResponse), "refresh"
        )

    async def logout(self, refresh_token: str | None = None) -> None:
        token = refresh_token or self._tokens.refresh_token
        if not token:
            raise AuthError(code="AUTH_MISSING", message="No refresh token to revoke")
        body = LogoutRequest(refresh_token=token).to_wire()
        await self.request(ApiRequest("/api/auth/logout", "POST", body))
        self.clear_tokens()

    async def get_current_user(self) -> UserResponse:
        return await self.request(ApiRequest("/api/auth/me", "GET", requires_auth=True), UserResponse)

    async def upload_image(self, image: str) -> UploadImageResponse:
        body = UploadImageRequest(image=image).to_wire()
        return await self.request(
            ApiRequest("/api/images/upload", "POST", body, requires_auth=True),
            UploadImageResponse,
        )

    async def update_password(self, current_password: str, new_password: str) -> UserResponse:
        body = UpdatePasswordRequest(current_password=current_password, new_password=new_password).to_wire()
        return await self.request(ApiRequest("/api/auth/me", "PATCH", body, requires_auth=True), UserResponse)

    async def update_avatar_url(self, avatar_url: str) -> UserResponse:
        body = UpdateAvatarUrlRequest(avatar_url=avatar_url).to_wire()
        return await self.request(ApiRequest("/api/auth/me", "PATCH", body, requires_auth=True), UserResponse)

    async def refresh_session(self) -> TokenPair:
        """Force a refresh of the held pair, joining one already in flight."""
        return await self._refresh(self._tokens)

    async def request(self, descriptor: ApiRequest, response_model: type[BaseModel] | None = None) -> Any:
        if descriptor.requires_auth:
            await self._ensure_access_token()

        sent_with = self._tokens
        response = await self._send(descriptor, sent_with.access_token)

        if response.status_code == 401 and descriptor.requires_auth:
            try:
                rotated = await self._refresh(sent_with)
            except AuthError as exc:
                raise AuthError(
                    code="AUTH_FAILED",
                    message="Authentication failed",
                    status_code=401,
                ) from exc
            response = await self._send(descriptor, rotated.access_token)
            if response.status_code == 401:
                self._notify_auth_error()
                raise AuthError(
                    code="AUTH_REJECTED",
                    message="Authentication failed",
                    status_code=401,
                )

        return self._decode(response, response_model)

    async def _ensure_access_token(self) -> None:
        tokens = self._tokens
        if tokens.is_empty:
            self._notify_auth_error()
            raise AuthError(code="AUTH_MISSING", message="Not authenticated")
        if tokens.access_token:
            if not is_decodable_and_expired(
                tokens.access_token,
                leeway_seconds=self.config.token_expiry_leeway_seconds,
            ):
                return
            log_event(logger, "auth.expired", reason="access_token_expired")
        else:
            log_event(logger, "auth.expired", reason="access_token_missing")

        try:
            await self._refresh(tokens)
        except AuthError as exc:
            raise AuthError(
                code="AUTH_EXPIRED",
                message="Token expired and refresh failed",
                status_code=exc.status_code,
            ) from exc

    async def _refresh(self, stale: TokenPair) -> TokenPair:
        task = self._refresh_task
        if task is None or task.done():
            current = self._tokens
            if (
                current.access_token
                and current.access_token != stale.access_token
                and not is_decodable_and_expired(
                    current.access_token,
                    leeway_seconds=self.config.token_expiry_leeway_seconds,
                )
            ):
                # Another caller already rotated the pair this request was sent with.
                return current
            if not current.refresh_token:
                self._notify_auth_error()
                raise AuthError(code="AUTH_NO_REFRESH_TOKEN", message="Token refresh failed")
            task = asyncio.create_task(self._run_refresh(current.refresh_token))
            task.add_done_callback(_consume_outcome)
            self._refresh_task = task
        return await asyncio.shield(task)

    async def _run_refresh(self, refresh_token: str) -> TokenPair:
        started = time.monotonic()
        try:
            try:
                result = await self.refresh_access_token(refresh_token)
            except ApiError as exc:
                log_event(
                    logger,
                    "auth.refresh",
                    level=logging.WARNING,
                    outcome="failure",
                    error_code=exc.code,
                    status_code=exc.status_code,
                    duration_ms=_elapsed_ms(started),
                )
                self._notify_auth_error()
                raise AuthError(
                    code="AUTH_REFRESH_FAILED",
                    message="Token refresh failed",
                    status_code=exc.status_code,
                ) from exc

            if self._tokens.refresh_token != refresh_token:
                log_event(logger, "auth.refresh", outcome="superseded", duration_ms=_elapsed_ms(started))
                if self._tokens.access_token:
                    return self._tokens
                raise AuthError(code="AUTH_SUPERSEDED", message="Session ended during token refresh")

            rotated = TokenPair(result.access_token, result.refresh_token or refresh_token)
            self._tokens = rotated
        finally:
            if self._refresh_task is asyncio.current_task():
                self._refresh_task = None

        log_event(logger, "auth.refresh", outcome="success", duration_ms=_elapsed_ms(started))
        if self._token_refresh_listener:
            try:
                self._token_refresh_listener(rotated.access_token, rotated.refresh_token)
            except Exception as exc:
                log_event(
                    logger,
                    "auth.refresh_listener_failed",
                    level=logging.WARNING,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
        return rotated

    async def _send(self, descriptor: ApiRequest, access_token: str | None) -> httpx.Response:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if descriptor.requires_auth and access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        method = descriptor.method.upper()
        started = time.monotonic()
        try:
            response = await self._client.request(
                method,
                self._build_url(descriptor.endpoint),
                headers=headers,
                json=descriptor.body,
            )
        except httpx.TransportError as exc:
            log_event(
                logger,
                "http.request",
                level=logging.WARNING,
                method=method,
                endpoint=descriptor.endpoint,
                outcome="transport_error",
                error_type=type(exc).__name__,
                duration_ms=_elapsed_ms(started),
            )
            raise TransportError(
                code="NETWORK_ERROR",
                message=str(exc) or "Network error while calling the inventory API",
                details={"type": type(exc).__name__},
            ) from exc

        log_event(
            logger,
            "http.request",
            level=logging.DEBUG,
            method=method,
            endpoint=descriptor.endpoint,
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
        )
        return response

    def _build_url(self, endpoint: str) -> str:
        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        return f"{self.config.api_base_url}{path}"

    @staticmethod
    def _decode(response: httpx.Response, response_model: type[BaseModel] | None) -> Any:
        if not response.is_success:
            raise error_from_response(response)
        if (
            response.status_code == 204
            or response.headers.get("content-length") == "0"
            or not response.content
        ):
            return None
        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeError(
                code="DECODE_ERROR",
                message="Response body is not valid JSON",
                details=str(exc),
                status_code=response.status_code,
            ) from exc
        if response_model is None:
            return payload
        try:
            return response_model.model_validate(payload)
        except ModelValidationError as exc:
            raise DecodeError(
                code="DECODE_ERROR",
                message=f"Unexpected response shape for {response_model.__name__}",
                details=exc.errors(include_url=False),
                status_code=response.status_code,
                raw_payload=payload,
            ) from exc

    def _notify_auth_error(self) -> None:
        log_event(logger, "auth.failed", level=logging.WARNING)
        if self._auth_error_listener:
            try:
                self._auth_error_listener()
            except Exception as exc:
                log_event(
                    logger,
                    "auth.error_listener_failed",
                    level=logging.WARNING,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )


def _require_auth_response(result: AuthResponse | None, operation: str) -> AuthResponse:
    if result is None:
        raise DecodeError(
            code="DECODE_ERROR",
            message=f"Empty {operation} response: expected accessToken",
        )
    return result


def _consume_outcome(task: asyncio.Task[TokenPair]) -> None:
    # Mark the exception retrieved when every waiter was cancelled.
    if not task.cancelled():
        task.exception()


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
