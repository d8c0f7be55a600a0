"""Generic OAuth2 authorization-code client for pluggable identity providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Union
from urllib.parse import urlencode

import httpx

from forum_sso.core.config import settings
from forum_sso.core.urls import absolute_url, entry_path
from forum_sso.integrations.oauth.exceptions import ConfigurationError, UpstreamHttpError
from forum_sso.integrations.oauth.state import encode_state

sso_logger = logging.getLogger("forum_sso.sso")

# Logical profile field -> key the provider uses when nothing is configured.
DEFAULT_PROFILE_KEYS: Dict[str, str] = {
    "email": "email",
    "photo": "picture",
    "name": "displayname",
    "full_name": "name",
    "unique_id": "user_id",
}

PROFILE_FIELDS = (
    ("email", "Email"),
    ("photo", "Photo"),
    ("name", "Name"),
    ("full_name", "FullName"),
    ("unique_id", "UniqueID"),
)

REDACTED = "[redacted]"
SECRET_KEYS = frozenset(
    {
        "access_token",
        "accesstoken",
        "authorization",
        "client_secret",
        "code",
        "id_token",
        "refresh_token",
    }
)

TokenLoader = Callable[[str], Optional[str]]


@dataclass
class ProviderConfig:
    """Static configuration of one identity provider, read-only to the flow."""

    key: str
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    authorize_url: Optional[str] = None
    token_url: Optional[str] = None
    profile_url: Optional[str] = None
    scope: Optional[str] = None
    accepted_scope: Optional[str] = None
    is_default: bool = False
    profile_key_map: Dict[str, str] = field(default_factory=dict)
    name: Optional[str] = None
    register_url: Optional[str] = None
    sign_out_url: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


def merge_params(
    defaults: Mapping[str, Any], overrides: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """Merge ``overrides`` over ``defaults`` key by key; overrides win."""

    merged = dict(defaults)
    if overrides:
        merged.update(overrides)
    return merged


def redact(data: Any) -> Any:
    """Copy ``data`` with secret-bearing values replaced."""

    if isinstance(data, Mapping):
        return {
            key: REDACTED if str(key).lower() in SECRET_KEYS and value else redact(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact(item) for item in data]
    return data


def require_value(key: str, value: Any, context: str) -> Any:
    if not value:
        raise ConfigurationError(f"Key {key} missing from {context} collection.")
    return value


def _compact(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


class OAuth2Client:
    """Runs the authorization-code grant against one configured provider.

    Per-provider behaviour is supplied as plain override mappings
    (``authorize_uri_params``, ``request_access_token_params``,
    ``profile_request_params`` and ``profile_key_defaults``) which are merged
    over the defaults built here.
    """

    default_content_type = "application/x-www-form-urlencoded"

    def __init__(
        self,
        provider_key: str,
        config: ProviderConfig,
        *,
        access_token: Optional[str] = None,
        scope: Optional[str] = None,
        authorize_uri_params: Optional[Mapping[str, Any]] = None,
        request_access_token_params: Optional[Mapping[str, Any]] = None,
        profile_request_params: Optional[Mapping[str, Any]] = None,
        profile_key_defaults: Optional[Mapping[str, str]] = None,
        token_loader: Optional[TokenLoader] = None,
        url_builder: Callable[[str], str] = absolute_url,
        timeout: Optional[float] = None,
        debug: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.provider_key = provider_key
        self.config = config
        self._access_token = access_token
        self.scope = scope if scope is not None else (config.scope or config.accepted_scope)
        self.authorize_uri_params: Dict[str, Any] = dict(authorize_uri_params or {})
        self.request_access_token_params: Dict[str, Any] = dict(request_access_token_params or {})
        self.profile_request_params: Dict[str, Any] = dict(profile_request_params or {})
        self.profile_key_defaults: Dict[str, str] = dict(profile_key_defaults or {})
        self.token_loader = token_loader
        self.url_builder = url_builder
        self.timeout = timeout if timeout is not None else settings.sso_http_timeout_seconds
        self.debug = settings.sso_debug if debug is None else debug
        self._transport = transport

    # ------------------------------------------------------------------ state

    def is_configured(self) -> bool:
        """True when both the client id and the client secret are set."""
        return self.config.is_configured

    def is_default(self) -> bool:
        return bool(self.config.is_default)

    def is_connected(self) -> bool:
        return bool(self._access_token)

    def access_token(self, new_value: Optional[str] = None) -> Union[str, bool, None]:
        """Return the current access token, optionally replacing it first.

        Returns ``False`` when the provider is not configured and no token is
        being set. Otherwise a missing token is loaded from the signed-in
        user's stored attributes through ``token_loader``.
        """

        if not self.is_configured() and new_value is None:
            return False

        if new_value is not None:
            self._access_token = new_value

        if self._access_token is None and self.token_loader is not None:
            self._access_token = self.token_loader(self.provider_key)

        return self._access_token

    def set_access_token(self, access_token: Optional[str]) -> "OAuth2Client":
        self._access_token = access_token
        return self

    def set_scope(self, scope: Optional[str]) -> "OAuth2Client":
        self.scope = scope
        return self

    def set_authorize_uri_params(self, params: Mapping[str, Any]) -> "OAuth2Client":
        self.authorize_uri_params = dict(params)
        return self

    def set_request_access_token_params(self, params: Mapping[str, Any]) -> "OAuth2Client":
        self.request_access_token_params = dict(params)
        return self

    def set_profile_request_params(self, params: Mapping[str, Any]) -> "OAuth2Client":
        self.profile_request_params = dict(params)
        return self

    @property
    def profile_key_map(self) -> Dict[str, str]:
        """Effective source key for each logical profile field."""

        keys = merge_params(DEFAULT_PROFILE_KEYS, self.profile_key_defaults)
        return merge_params(
            keys, {name: key for name, key in self.config.profile_key_map.items() if key}
        )

    # ------------------------------------------------------------- endpoints

    def redirect_uri(self) -> str:
        """Absolute callback URL registered with the provider."""
        return self.url_builder(entry_path(self.provider_key))

    def authorize_uri(self, state: Optional[Mapping[str, Any]] = None) -> str:
        """Build the URL that sends the user to the provider's consent page.

        Args:
            state: Values to be echoed back by the provider. Encoded as one
                flat query string and always applied after any override.
        """

        defaults = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": self.redirect_uri(),
            "scope": self.scope,
        }
        params = merge_params(defaults, self.authorize_uri_params)

        if state is not None:
            params["state"] = encode_state(state)

        uri = self.config.authorize_url or ""
        separator = "&" if "?" in uri else "?"
        return f"{uri}{separator}{urlencode(_compact(params))}"

    async def request_access_token(self, code: str) -> Any:
        """Exchange an authorization ``code`` at the token endpoint.

        Returns the decoded response body as sent by the provider.
        """

        uri = require_value("token_url", self.config.token_url, "provider")

        defaults = {
            "code": code,
            "client_id": self.config.client_id,
            "redirect_uri": self.redirect_uri(),
            "client_secret": self.config.client_secret,
            "grant_type": "authorization_code",
            "scope": self.scope,
        }
        post = merge_params(defaults, self.request_access_token_params)

        self.log(
            "Before calling API to request access token",
            {"requestAccessToken": {"targetURI": uri, "post": post}},
        )

        return await self.api(uri, "POST", post)

    async def get_profile(self) -> Dict[str, Any]:
        """Fetch the user's profile with the current token and normalize it."""

        uri = require_value("profile_url", self.config.profile_url, "provider")

        params = merge_params({"access_token": self.access_token()}, self.profile_request_params)
        raw_profile = await self.api(uri, "GET", params)

        if not isinstance(raw_profile, Mapping):
            raise UpstreamHttpError(
                "The OAuth server did not return a valid profile.",
                status_code=502,
                provider_key=self.provider_key,
            )

        profile = self.translate_profile_results(raw_profile)

        self.log(
            "getProfile API call",
            {"ProfileUrl": uri, "Params": params, "RawProfile": raw_profile, "Profile": profile},
        )

        return profile

    def translate_profile_results(self, raw_profile: Mapping[str, Any]) -> Dict[str, Any]:
        """Rename provider-specific profile fields to the forum's field names.

        Fields the provider did not send are left out; ``Provider`` is always
        set to this client's provider key.
        """

        key_map = self.profile_key_map
        profile: Dict[str, Any] = {}
        for name, logical_key in PROFILE_FIELDS:
            source_key = key_map[name]
            if source_key in raw_profile:
                profile[logical_key] = raw_profile[source_key]

        profile["Provider"] = self.provider_key
        return profile

    # -------------------------------------------------------------- transport

    async def api(
        self,
        uri: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Call a provider endpoint and decode its answer.

        Args:
            uri: Endpoint on the provider's server.
            method: HTTP method; ``GET`` sends ``params`` as the query string,
                anything else sends them as the body.
            params: Request parameters.
            options: ``content_type`` overrides the request Content-Type,
                ``authorization`` sets the Authorization header, ``timeout``
                and ``connect_timeout`` override the configured timeout.

        Returns:
            The decoded JSON mapping when the provider answers with JSON,
            otherwise the raw body text.

        Raises:
            UpstreamHttpError: On transport failure or a non-2xx status.
        """

        options = dict(options or {})
        method = method.upper()
        params = _compact(params or {})

        headers: Dict[str, str] = {}
        content_type = options.get("content_type", self.default_content_type)
        if content_type:
            headers["Content-Type"] = content_type
        authorization = options.get("authorization")
        if authorization:
            headers["Authorization"] = authorization

        read_timeout = options.get("timeout", self.timeout)
        timeout = httpx.Timeout(read_timeout, connect=options.get("connect_timeout", read_timeout))

        self.log(
            "Proxy Request Sent in API",
            {"uri": uri, "method": method, "headers": headers, "params": params},
        )

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                if method == "GET":
                    response = await client.get(uri, params=params, headers=headers)
                elif content_type and "json" in content_type:
                    response = await client.request(method, uri, json=params, headers=headers)
                elif method == "POST":
                    response = await client.post(uri, data=params, headers=headers)
                else:
                    response = await client.request(method, uri, data=params, headers=headers)
        except httpx.HTTPError as exc:
            self.log("API transport error", {"uri": uri, "error": str(exc)})
            raise UpstreamHttpError(
                f"Error communicating with the OAuth server: {type(exc).__name__}",
                status_code=502,
                provider_key=self.provider_key,
            ) from exc

        body: Any = response.text
        if "application/json" in response.headers.get("content-type", "").lower():
            try:
                body = response.json()
            except ValueError:
                body = None
            self.log("API JSON Response", {"response": body})

        if not response.is_success:
            error = body.get("error") if isinstance(body, Mapping) else None
            description = body.get("error_description") if isinstance(body, Mapping) else None
            if error:
                message = f"Request server says: {description or error} (code: {error})"
            else:
                message = f"HTTP error {response.status_code}"
            self.log(
                "API Response Error Thrown",
                {"status": response.status_code, "response": body},
            )
            raise UpstreamHttpError(
                message,
                status_code=response.status_code,
                error=error,
                error_description=description,
                provider_key=self.provider_key,
            )

        return body

    # ------------------------------------------------------------ diagnostics

    def log(self, message: str, data: Any) -> None:
        """Emit an SSO diagnostic entry when debugging is switched on."""

        if not self.debug:
            return
        safe = redact(data)
        sso_logger.info(
            "[%s] %s %s",
            self.provider_key,
            message,
            safe,
            extra={"sso_provider": self.provider_key, "sso_data": safe},
        )


__all__ = [
    "DEFAULT_PROFILE_KEYS",
    "OAuth2Client",
    "ProviderConfig",
    "merge_params",
    "redact",
]
