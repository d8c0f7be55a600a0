"""OAuth2-specific exceptions."""

from __future__ import annotations

from typing import Optional


class OAuth2Error(Exception):
    """Base OAuth2 error.

    ``http_status`` is the status the forum answers with when the error
    reaches the request boundary.
    """

    http_status = 400

    def __init__(self, message: str, *, provider_key: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider_key = provider_key


class UnsupportedProviderError(OAuth2Error):
    """Raised when no provider is stored under the requested key."""

    http_status = 404


class ProviderRejectedError(OAuth2Error):
    """Raised when the provider answers the flow with an ``error``."""

    pass


class UpstreamHttpError(OAuth2Error):
    """Raised when a provider endpoint answers with a non-2xx status."""

    http_status = 502

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
        provider_key: Optional[str] = None,
    ) -> None:
        super().__init__(message, provider_key=provider_key)
        self.status_code = status_code
        self.error = error
        self.error_description = error_description


class MissingTokenError(OAuth2Error):
    """Raised when the token endpoint succeeds without an access token."""

    pass


class ConfigurationError(OAuth2Error):
    """Raised when a provider setting required by the flow is absent."""

    http_status = 500


class UserNotFoundError(OAuth2Error):
    """Raised when a profile connection references an unknown user."""

    http_status = 404


class SessionExpiredError(OAuth2Error):
    """Raised when the connect step finds nothing stashed for the provider."""

    pass


__all__ = [
    "OAuth2Error",
    "UnsupportedProviderError",
    "ProviderRejectedError",
    "UpstreamHttpError",
    "MissingTokenError",
    "ConfigurationError",
    "UserNotFoundError",
    "SessionExpiredError",
]
