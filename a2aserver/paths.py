"""Well-known endpoint paths and helpers for deriving them from agent URLs."""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional
from urllib.parse import unquote, urlsplit

logger = logging.getLogger(__name__)

DEFAULT_JSONRPC_PATH = "/"
AGENT_CARD_PATH = "/.well-known/agent-card.json"
OLD_AGENT_CARD_PATH = "/.well-known/agent.json"
JWKS_PATH = "/.well-known/jwks.json"


class _AbsoluteURL(NamedTuple):
    scheme: str
    host: str
    path: str


def _parse_absolute(url: str) -> Optional[_AbsoluteURL]:
    """Split an absolute URL, or return None if it has no scheme or host."""
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        logger.warning("Failed to parse agent card URL '%s': %s", url, exc)
        return None
    host = parts.netloc.rpartition("@")[2]
    if not parts.scheme or not host:
        logger.warning("Invalid agent card URL '%s': missing scheme or host", url)
        return None
    return _AbsoluteURL(parts.scheme, host, unquote(parts.path))


def extract_base_path_from_url(agent_url: str) -> str:
    """Return the path part of an agent URL to serve endpoints under.

    "http://localhost:8080/agent/api/v2/" gives "/agent/api/v2"; a URL with
    no path, a root path, or one that is not absolute gives "".
    """
    if not agent_url:
        return ""
    parsed = _parse_absolute(agent_url)
    if parsed is None:
        return ""
    base_path = parsed.path
    if len(base_path) > 1 and base_path.endswith("/"):
        base_path = base_path[:-1]
    if base_path in ("", "/"):
        return ""
    return base_path


def compose_jwks_url(agent_url: str, jwks_endpoint: str) -> str:
    """Return the JWKS endpoint qualified with the agent URL's scheme and host.

    Falls back to the bare endpoint path when the agent URL is empty or not
    an absolute URL.
    """
    if not agent_url:
        logger.warning("Agent card URL is empty, using relative JWKS endpoint")
        return jwks_endpoint
    parsed = _parse_absolute(agent_url)
    if parsed is None:
        return jwks_endpoint
    return f"{parsed.scheme}://{parsed.host}{jwks_endpoint}"