"""Encoding of the opaque ``state`` value carried through the provider."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode

ENTRY = "entry"
PROFILE = "profile"

# Used when the provider calls back without any state at all.
DEFAULT_STATE: Dict[str, Optional[str]] = {"r": ENTRY, "uid": None, "d": "none"}


def encode_state(state: Mapping[str, Any]) -> str:
    """Flatten ``state`` into a query string; ``None`` values are dropped."""

    return urlencode({key: value for key, value in state.items() if value is not None})


def decode_state(raw: Optional[str]) -> Dict[str, Optional[str]]:
    """Parse a state value returned by the provider.

    Missing state decodes to :data:`DEFAULT_STATE`; a state without an ``r``
    discriminator is treated as an entry request.
    """

    if not raw:
        return dict(DEFAULT_STATE)

    decoded: Dict[str, Optional[str]] = dict(parse_qsl(raw, keep_blank_values=True))
    if not decoded.get("r"):
        decoded["r"] = ENTRY
    return decoded


__all__ = ["DEFAULT_STATE", "ENTRY", "PROFILE", "decode_state", "encode_state"]
