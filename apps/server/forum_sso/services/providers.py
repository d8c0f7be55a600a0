"""Repository helpers for stored identity provider settings."""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urlparse

from sqlalchemy import select
from sqlalchemy.orm import Session

from forum_sso.core.encryption import decrypt_token, encrypt_token
from forum_sso.integrations.oauth.base import DEFAULT_PROFILE_KEYS, OAuth2Client, ProviderConfig, TokenLoader
from forum_sso.integrations.oauth.exceptions import UnsupportedProviderError
from forum_sso.integrations.oauth.factory import OAuth2ClientFactory
from forum_sso.models.authentication_provider import AuthenticationProvider
from forum_sso.schemas.provider import ProviderConfigUpdate

logger = logging.getLogger(__name__)

_PROFILE_KEY_COLUMNS = {
    "email": "profile_key_email",
    "photo": "profile_key_photo",
    "name": "profile_key_name",
    "full_name": "profile_key_full_name",
    "unique_id": "profile_key_unique_id",
}


def get_provider(db: Session, provider_key: str) -> Optional[AuthenticationProvider]:
    """Fetch the stored provider row for ``provider_key``."""
    return db.get(AuthenticationProvider, provider_key)


def to_provider_config(provider: AuthenticationProvider) -> ProviderConfig:
    """Convert a stored provider row into the flow's read-only config."""

    return ProviderConfig(
        key=provider.key,
        client_id=provider.client_id,
        client_secret=decrypt_token(provider.encrypted_client_secret),
        authorize_url=provider.authorize_url,
        token_url=provider.token_url,
        profile_url=provider.profile_url,
        scope=provider.scope,
        accepted_scope=provider.accepted_scope,
        is_default=bool(provider.is_default),
        profile_key_map={
            name: getattr(provider, column)
            for name, column in _PROFILE_KEY_COLUMNS.items()
            if getattr(provider, column)
        },
        name=provider.name,
        register_url=provider.register_url,
        sign_out_url=provider.sign_out_url,
    )


def get_provider_config(db: Session, provider_key: str) -> Optional[ProviderConfig]:
    provider = get_provider(db, provider_key)
    if provider is None:
        return None
    return to_provider_config(provider)


def list_provider_configs(db: Session) -> List[ProviderConfig]:
    statement = select(AuthenticationProvider).order_by(AuthenticationProvider.key)
    return [to_provider_config(provider) for provider in db.execute(statement).scalars()]


def get_default_provider_config(db: Session) -> Optional[ProviderConfig]:
    """Return the configured provider flagged as the default sign-in method."""

    statement = select(AuthenticationProvider).where(AuthenticationProvider.is_default.is_(True))
    for provider in db.execute(statement).scalars():
        config = to_provider_config(provider)
        if config.is_configured:
            return config
    return None


def ensure_provider(db: Session, provider_key: str) -> AuthenticationProvider:
    """Create the provider row with default profile keys if it does not exist."""

    provider = get_provider(db, provider_key)
    if provider is not None:
        return provider

    provider = AuthenticationProvider(
        key=provider_key,
        scheme_alias=provider_key,
        name=provider_key,
        accepted_scope="profile",
        is_default=False,
        **{column: DEFAULT_PROFILE_KEYS[name] for name, column in _PROFILE_KEY_COLUMNS.items()},
    )
    db.add(provider)
    db.commit()
    db.refresh(provider)
    logger.info("Created authentication provider %s", provider_key)
    return provider


def _base_url(authorize_url: str) -> Optional[str]:
    parts = urlparse(authorize_url)
    if parts.scheme and parts.netloc:
        return f"{parts.scheme}://{parts.netloc}"
    return None


def save_provider_config(
    db: Session, provider_key: str, provider_in: ProviderConfigUpdate
) -> AuthenticationProvider:
    """Validate-and-store provider settings, creating the row if needed."""

    provider = ensure_provider(db, provider_key)

    data = provider_in.model_dump(exclude={"client_secret"})
    for name, value in data.items():
        # Blank profile keys and names keep the stored value.
        if (name == "name" or name.startswith("profile_key_")) and not value:
            continue
        setattr(provider, name, value)
    provider.encrypted_client_secret = encrypt_token(provider_in.client_secret)

    base_url = _base_url(provider_in.authorize_url)
    if base_url:
        provider.base_url = base_url
        provider.sign_in_url = base_url

    if provider_in.is_default:
        # Only one provider may be the default sign-in method.
        others = select(AuthenticationProvider).where(
            AuthenticationProvider.is_default.is_(True),
            AuthenticationProvider.key != provider_key,
        )
        for other in db.execute(others).scalars():
            other.is_default = False

    db.commit()
    db.refresh(provider)
    logger.info("Saved authentication provider %s", provider_key)
    return provider


def get_client(
    db: Session,
    provider_key: str,
    *,
    token_loader: Optional[TokenLoader] = None,
) -> OAuth2Client:
    """Build the OAuth2 client for ``provider_key``."""

    config = get_provider_config(db, provider_key)
    if config is None:
        raise UnsupportedProviderError(
            f"Provider '{provider_key}' is not supported", provider_key=provider_key
        )
    return OAuth2ClientFactory.create_client(config, token_loader=token_loader)


__all__ = [
    "ensure_provider",
    "get_client",
    "get_default_provider_config",
    "get_provider",
    "get_provider_config",
    "list_provider_configs",
    "save_provider_config",
    "to_provider_config",
]
