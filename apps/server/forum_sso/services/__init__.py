"""Service layer helpers for domain operations."""

from .providers import (
    ensure_provider,
    get_client,
    get_provider_config,
    save_provider_config,
)
from .stash import SessionStash
from .users import (
    get_user_access_token,
    get_user_by_id,
    save_identity_link,
    save_user_attribute,
)

__all__ = [
    "SessionStash",
    "ensure_provider",
    "get_client",
    "get_provider_config",
    "get_user_access_token",
    "get_user_by_id",
    "save_identity_link",
    "save_provider_config",
    "save_user_attribute",
]
