"""Factory for building OAuth2 clients from stored provider configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from forum_sso.integrations.oauth.base import OAuth2Client, ProviderConfig, TokenLoader


@dataclass
class ProviderOverrides:
    """Per-provider additions merged over the generic request parameters."""

    scope: Optional[str] = None
    authorize_uri_params: Dict[str, Any] = field(default_factory=dict)
    request_access_token_params: Dict[str, Any] = field(default_factory=dict)
    profile_request_params: Dict[str, Any] = field(default_factory=dict)
    profile_key_defaults: Dict[str, str] = field(default_factory=dict)


class OAuth2ClientFactory:
    """Factory for creating OAuth2 clients."""

    _overrides: Dict[str, ProviderOverrides] = {}

    @classmethod
    def register_provider(cls, provider_key: str, overrides: ProviderOverrides) -> None:
        """Register provider-specific overrides under ``provider_key``."""
        cls._overrides[provider_key] = overrides

    @classmethod
    def unregister_provider(cls, provider_key: str) -> None:
        cls._overrides.pop(provider_key, None)

    @classmethod
    def get_overrides(cls, provider_key: str) -> ProviderOverrides:
        return cls._overrides.get(provider_key) or ProviderOverrides()

    @classmethod
    def create_client(
        cls,
        config: ProviderConfig,
        *,
        access_token: Optional[str] = None,
        token_loader: Optional[TokenLoader] = None,
        **kwargs: Any,
    ) -> OAuth2Client:
        """Create an OAuth2 client bound to ``config``."""
        overrides = cls.get_overrides(config.key)
        return OAuth2Client(
            config.key,
            config,
            access_token=access_token,
            scope=overrides.scope,
            authorize_uri_params=overrides.authorize_uri_params,
            request_access_token_params=overrides.request_access_token_params,
            profile_request_params=overrides.profile_request_params,
            profile_key_defaults=overrides.profile_key_defaults,
            token_loader=token_loader,
            **kwargs,
        )

    @classmethod
    def get_registered_providers(cls) -> list[str]:
        return sorted(cls._overrides.keys())


__all__ = ["OAuth2ClientFactory", "ProviderOverrides"]
