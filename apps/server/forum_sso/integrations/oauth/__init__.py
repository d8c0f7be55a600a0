"""OAuth2 authorization-code flow for identity providers."""

from .base import OAuth2Client, ProviderConfig
from .exceptions import OAuth2Error
from .factory import OAuth2ClientFactory, ProviderOverrides

__all__ = [
    "OAuth2Client",
    "OAuth2ClientFactory",
    "OAuth2Error",
    "ProviderConfig",
    "ProviderOverrides",
]
