"""Ingestion endpoint helpers: URL construction and request headers."""

import base64
from urllib.parse import urlsplit


def build_api_url(base_url: str, organization: str, stream_name: str) -> str:
    """Build the ``_multi`` ingestion URL for an organization and stream.

    Only scheme, host (with port) and path of *base_url* are kept, so any
    credentials, query or fragment in it are dropped. One trailing
    slash is stripped from the path before the API suffix is appended.

    >>> build_api_url("https://o2.example.com/base/", "default", "app")
    'https://o2.example.com/base/api/default/app/_multi'
    """
    parts = urlsplit(base_url)
    host = parts.netloc.rpartition("@")[2]
    path = parts.path[:-1] if parts.path.endswith("/") else parts.path
    return f"{parts.scheme}://{host}{path}/api/{organization}/{stream_name}/_multi"


def basic_auth_token(username: str, password: str) -> str:
    """Encode ``username:password`` as a Basic authorization credential."""
    raw = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def build_headers(username: str, password: str) -> dict[str, str]:
    return {
        "Authorization": basic_auth_token(username, password),
        "Content-Type": "application/json",
    }
