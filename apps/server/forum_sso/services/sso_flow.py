"""Service orchestrating the SSO callback, profile linking and connect steps."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from forum_sso.core.urls import connect_path
from forum_sso.integrations.oauth.base import OAuth2Client
from forum_sso.integrations.oauth.exceptions import (
    ConfigurationError,
    MissingTokenError,
    ProviderRejectedError,
    SessionExpiredError,
    UpstreamHttpError,
    UserNotFoundError,
)
from forum_sso.integrations.oauth.factory import OAuth2ClientFactory
from forum_sso.integrations.oauth.state import PROFILE, decode_state
from forum_sso.services.providers import get_default_provider_config, list_provider_configs
from forum_sso.services.stash import SessionStash
from forum_sso.services.users import (
    build_connection_attributes,
    get_identity_link,
    get_user_by_id,
    save_identity_link,
    save_user_attribute,
)

logger = logging.getLogger(__name__)

AFTER_CONNECTION = "AfterConnection"

Notify = Callable[[str, Dict[str, Any]], None]


@dataclass
class LinkedResult:
    """The provider identity was linked to an existing user."""

    user_id: int
    provider_key: str
    profile: Dict[str, Any]


@dataclass
class ConnectRedirect:
    """The host must continue the sign-in at ``url``."""

    provider_key: str
    url: str
    target: Optional[str] = None


@dataclass
class ConnectData:
    """Everything the host needs to register or sign in the user."""

    provider_key: str
    profile: Dict[str, Any]
    attributes: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[int] = None
    trusted: bool = True
    verified: bool = True


def _ignore(event_name: str, payload: Dict[str, Any]) -> None:
    return None


async def exchange_code(client: OAuth2Client, code: Optional[str]) -> str:
    """Trade ``code`` for an access token and bind it to ``client``."""

    if not code:
        raise ProviderRejectedError(
            "The OAuth server did not return an authorization code.",
            provider_key=client.provider_key,
        )

    response = await client.request_access_token(code)
    if not response or not isinstance(response, Mapping):
        raise UpstreamHttpError(
            "The OAuth server did not return a valid response.",
            status_code=502,
            provider_key=client.provider_key,
        )

    if response.get("error"):
        raise ProviderRejectedError(
            response.get("error_description") or response["error"],
            provider_key=client.provider_key,
        )

    access_token = response.get("access_token")
    if not access_token:
        raise MissingTokenError(
            "The OAuth server did not return an access token.",
            provider_key=client.provider_key,
        )

    client.access_token(access_token)
    return access_token


async def handle_callback(
    db: Session,
    client: OAuth2Client,
    stash: SessionStash,
    *,
    code: Optional[str],
    state: Optional[str] = None,
    error: Optional[str] = None,
    notify: Notify = _ignore,
) -> Union[LinkedResult, ConnectRedirect]:
    """Process the provider's redirect back to ``/entry/{provider}``.

    Raises:
        ProviderRejectedError: The provider sent ``error`` or refused the code.
            Also raised for a profile connection this session never started.
        MissingTokenError: The token response had no access token.
        UpstreamHttpError: A provider endpoint failed.
        UserNotFoundError: A profile connection named an unknown user.
    """

    if error:
        raise ProviderRejectedError(error, provider_key=client.provider_key)

    flow_state = decode_state(state)
    user_id = None
    if flow_state.get("r") == PROFILE:
        user_id = claim_profile_connection(stash, client.provider_key, flow_state)

    # A new attempt invalidates whatever an earlier one left behind.
    stash.clear(client.provider_key)

    access_token = await exchange_code(client, code)

    client.log("Getting Profile", {})
    profile = await client.get_profile()
    client.log("Profile", profile)

    if user_id is not None:
        return link_profile(
            db,
            client.provider_key,
            user_id,
            access_token,
            profile,
            notify=notify,
        )

    stash.put(client.provider_key, build_connection_attributes(access_token, profile))

    url = connect_path(client.provider_key)
    target = flow_state.get("target")
    if target:
        url = f"{url}?{urlencode({'Target': target})}"
    return ConnectRedirect(provider_key=client.provider_key, url=url, target=target)


def link_profile(
    db: Session,
    provider_key: str,
    user_id: Optional[str],
    access_token: str,
    profile: Dict[str, Any],
    *,
    notify: Notify = _ignore,
) -> LinkedResult:
    """Attach the provider identity in ``profile`` to an existing user."""

    user = get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError("User not found.", provider_key=provider_key)

    unique_id = profile.get("UniqueID")
    if unique_id in (None, ""):
        raise ConfigurationError(
            "The provider profile has no unique id; check the provider's profile keys.",
            provider_key=provider_key,
        )

    save_identity_link(db, user.id, provider_key, unique_id)
    save_user_attribute(db, user.id, provider_key, build_connection_attributes(access_token, profile))

    notify(AFTER_CONNECTION, {"provider": provider_key, "user_id": user.id})
    logger.info("Linked %s identity to user %s", provider_key, user.id)

    return LinkedResult(user_id=user.id, provider_key=provider_key, profile=profile)


def connect_data(db: Session, provider_key: str, stash: SessionStash) -> ConnectData:
    """Consume the stashed sign-in for ``provider_key``.

    When the provider identity is already linked, the stored attributes of
    that user are refreshed and the user id is returned.
    """

    saved = stash.take(provider_key)
    if not saved or not isinstance(saved, Mapping):
        raise SessionExpiredError(
            "No pending sign-in was found for this provider. Please sign in again.",
            provider_key=provider_key,
        )

    profile = dict(saved.get("Profile") or {})
    attributes = {provider_key: dict(saved)}

    data = ConnectData(provider_key=provider_key, profile=profile, attributes=attributes)

    link = get_identity_link(db, provider_key, profile.get("UniqueID"))
    if link is not None:
        save_user_attribute(db, link.user_id, provider_key, dict(saved))
        data.user_id = link.user_id

    return data


def _profile_slot(provider_key: str) -> str:
    return f"{provider_key}:{PROFILE}"


def profile_connect_url(client: OAuth2Client, stash: SessionStash, user_id: int) -> str:
    """Authorize URL for connecting the provider from a user's profile.

    The user id and a one-time nonce are remembered in the caller's stash;
    the callback only links when it arrives in the same session with the
    same nonce and user id.
    """

    nonce = secrets.token_urlsafe(24)
    stash.put(_profile_slot(client.provider_key), {"uid": str(user_id), "nonce": nonce})
    return client.authorize_uri({"r": PROFILE, "uid": str(user_id), "n": nonce})


def claim_profile_connection(
    stash: SessionStash, provider_key: str, flow_state: Mapping[str, Any]
) -> str:
    """Consume the pending profile connection matching ``flow_state``.

    Returns the user id to link. The pending connection is removed whether
    or not it matches.
    """

    pending = stash.take(_profile_slot(provider_key))
    nonce = flow_state.get("n") or ""
    if (
        not isinstance(pending, Mapping)
        or not nonce
        or not secrets.compare_digest(str(pending.get("nonce", "")).encode(), nonce.encode())
        or pending.get("uid") != flow_state.get("uid")
    ):
        logger.warning("Rejected %s profile connection not started by this session", provider_key)
        raise ProviderRejectedError(
            "This connection was not started from your profile. Please try again.",
            provider_key=provider_key,
        )
    return pending["uid"]


def sign_in_url(client: OAuth2Client, target: Optional[str]) -> str:
    return client.authorize_uri({"target": target})


def list_sign_in_methods(db: Session, target: Optional[str]) -> List[Dict[str, Any]]:
    """Sign-in buttons for every configured provider.

    The default provider gets no button: it replaces the sign-in page and is
    reached through ``/entry/signin`` instead.
    """

    methods: List[Dict[str, Any]] = []
    for config in list_provider_configs(db):
        if not config.is_configured or config.is_default:
            continue
        client = OAuth2ClientFactory.create_client(config)
        methods.append(
            {
                "name": config.name or config.key,
                "provider": config.key,
                "sign_in_url": sign_in_url(client, target),
            }
        )
    return methods


def default_sign_in_url(db: Session, target: Optional[str]) -> Optional[str]:
    """Authorize URL of the default provider, replacing the forum's sign-in."""

    config = get_default_provider_config(db)
    if config is None:
        return None
    return sign_in_url(OAuth2ClientFactory.create_client(config), target)


__all__ = [
    "AFTER_CONNECTION",
    "ConnectData",
    "ConnectRedirect",
    "LinkedResult",
    "claim_profile_connection",
    "connect_data",
    "default_sign_in_url",
    "exchange_code",
    "handle_callback",
    "link_profile",
    "list_sign_in_methods",
    "profile_connect_url",
    "sign_in_url",
]
