from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import ParseResult, urlparse, urlunparse

_SCHEME_PREFIX = re.compile(r"^https?://", re.IGNORECASE)
_HOST_UNSAFE = re.compile(r"[\x00-\x20\x7f/\\:*?\"<>|]")

MAX_HOSTNAME_LEN = 253
MAX_LABEL_LEN = 63


def normalize_url(raw_url: str) -> str:
    """Normalize a URL for de-duplication.

    - Lowercases scheme + hostname.
    - Strips fragments.
    """

    parsed: ParseResult = urlparse(raw_url)
    parsed = parsed._replace(
        scheme=(parsed.scheme or "").lower(),
        netloc=(parsed.netloc or "").lower(),
        fragment="",
    )
    return urlunparse(parsed)


def hostname_from_url(url: str | None) -> str | None:
    """Return the lowercase hostname of ``url``, or None if it has none.

    Subdomains (``www`` included) are preserved: ``www.a.com`` and ``a.com``
    are different hosts everywhere in this package. Hosts that could not be a
    DNS name or a record file name (over-long labels, control characters,
    path separators) are treated as missing.
    """

    if not url:
        return None
    try:
        host = urlparse(url.strip()).hostname
    except ValueError:
        return None
    if not host or not is_valid_hostname(host):
        return None
    return host.lower()


def is_valid_hostname(host: str) -> bool:
    if len(host) > MAX_HOSTNAME_LEN or _HOST_UNSAFE.search(host):
        return False
    return all(len(label) <= MAX_LABEL_LEN for label in host.split("."))


def origin_of(url: str) -> str | None:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def _normalize_entry(raw: str) -> str:
    item = _SCHEME_PREFIX.sub("", str(raw).strip().lower())
    return item.split("/", 1)[0]


def host_matches_set(
    host: str | None,
    entries: Iterable[str],
    *,
    strict: bool = False,
) -> bool:
    """Match ``host`` against block-list entries.

    Loose mode (default) matches when the host contains an entry or an entry
    contains the host, so ``cdn.github.com`` and ``github.co`` both hit
    ``github.com``. Strict mode only accepts the entry itself or a subdomain of
    it.
    """

    if not host:
        return False
    host = host.lower()
    for raw in entries:
        if not raw:
            continue
        item = _normalize_entry(raw)
        if not item:
            continue
        if strict:
            if host == item or host.endswith("." + item):
                return True
        elif item in host or host in item:
            return True
    return False


def is_resource_url(url: str, exts: Iterable[str]) -> bool:
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    return any(path.endswith(ext) for ext in exts)
