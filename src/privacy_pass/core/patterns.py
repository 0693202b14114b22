"""URL helpers and WebExtension-style match patterns."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Pattern
from urllib.parse import urlsplit

ALL_URLS = "<all_urls>"
_ALL_URLS_RE = re.compile(r"^(?:https?|wss?|ftp|file)://")
_PATTERN_RE = re.compile(r"^(\*|[a-z][a-z0-9+.-]*)://([^/]*)(/.*)$")


@lru_cache(maxsize=256)
def pattern_to_regex(pattern: str) -> Pattern[str]:
    """Compile a match pattern (``scheme://host/path``) into a regex.

    ``*`` as scheme matches http and https, ``*.example.com`` matches the
    domain and any subdomain, and ``*`` in the path matches any run of
    characters including the query string.
    """

    if pattern == ALL_URLS:
        return _ALL_URLS_RE

    match = _PATTERN_RE.match(pattern)
    if not match:
        raise ValueError(f"Invalid match pattern: {pattern!r}")
    scheme, host, path = match.groups()

    scheme_re = "https?" if scheme == "*" else re.escape(scheme)
    if host == "*":
        host_re = "[^/]*"
    elif host.startswith("*."):
        host_re = r"(?:[^/]*\.)?" + re.escape(host[2:])
    else:
        host_re = re.escape(host)
    path_re = ".*".join(re.escape(piece) for piece in path.split("*"))
    return re.compile(f"^{scheme_re}://{host_re}{path_re}$")


def normalize_url(url: str) -> str:
    """Give bare origins the ``/`` path a browser would report."""

    parsed = urlsplit(url)
    if parsed.netloc and not parsed.path:
        return parsed._replace(path="/").geturl()
    return url


def matches_any(url: str, patterns: Iterable[str]) -> bool:
    candidate = normalize_url(url)
    return any(pattern_to_regex(pattern).match(candidate) for pattern in patterns)


def url_host(url: str) -> str:
    """Host with port, lowercased (``location.host`` semantics)."""

    return urlsplit(url).netloc.rpartition("@")[2].lower()


def url_hostname(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def url_path(url: str) -> str:
    return urlsplit(url).path or "/"


def url_origin(url: str) -> str:
    parsed = urlsplit(url)
    return f"{parsed.scheme}://{parsed.netloc.rpartition('@')[2]}"


def contains_any(value: str, needles: Iterable[str]) -> bool:
    return any(needle in value for needle in needles)
