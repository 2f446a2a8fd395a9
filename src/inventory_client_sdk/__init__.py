from .api_client import ApiRequest, AuthenticatedApiClient
from .auth_store import TokenStore
from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    DecodeError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    RequestError,
    ServerError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from .models import AuthResponse, StoredSession, UploadImageResponse, UserResponse
from .session import ApiSession
from .tokens import TokenPair, decode_claims, is_token_expired

__all__ = [
    "ApiError",
    "ApiRequest",
    "ApiSession",
    "AuthError",
    "AuthResponse",
    "AuthenticatedApiClient",
    "ClientConfig",
    "ConfigError",
    "ConflictError",
    "DecodeError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "RequestError",
    "ServerError",
    "StoredSession",
    "TokenPair",
    "TokenStore",
    "TransportError",
    "UnauthorizedError",
    "UploadImageResponse",
    "UserResponse",
    "ValidationError",
    "decode_claims",
    "is_token_expired",
    "load_config",
]
