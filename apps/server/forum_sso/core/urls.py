"""Absolute URL building for redirects handed to identity providers."""

from __future__ import annotations

from urllib.parse import urljoin

from forum_sso.core.config import settings


def absolute_url(path: str) -> str:
    """Resolve ``path`` against the public base URL of the forum."""

    if path.startswith(("http://", "https://")):
        return path
    base = settings.public_base_url.rstrip("/") + "/"
    return urljoin(base, path.lstrip("/"))


def entry_path(provider_key: str) -> str:
    """Callback path registered with the provider for ``provider_key``."""

    return f"/entry/{provider_key}"


def connect_path(provider_key: str) -> str:
    return f"/entry/connect/{provider_key}"


__all__ = ["absolute_url", "connect_path", "entry_path"]
