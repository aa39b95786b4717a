from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

from .filters import DEFAULT_FILTERS, HostFilters
from .urls import hostname_from_url, is_resource_url


@dataclass(frozen=True)
class Anchor:
    href: str
    text: str = ""


def looks_like_friend_link(
    href: str | None,
    text: str | None,
    base_host: str,
    filters: HostFilters = DEFAULT_FILTERS,
) -> bool:
    """Decide whether an anchor plausibly points at a peer blog.

    Same-host links into archive/tag/author/category listings are rejected.
    Friend-link keywords in the anchor text accept outright; otherwise only
    shallow (two path segments or fewer) cross-host links are accepted.
    """

    if not href:
        return False
    base_host = (base_host or "").lower()
    try:
        parsed = urlparse(urljoin(f"http://{base_host}", href))
        host = (parsed.hostname or "").lower()
    except ValueError:
        return False

    if host == base_host and any(
        parsed.path.startswith(seg) for seg in filters.internal_prefixes
    ):
        return False

    text_lower = (text or "").lower()
    if any(k in text_lower for k in filters.friend_keywords):
        return True

    if host and host != base_host:
        segments = [p for p in parsed.path.split("/") if p]
        if len(segments) <= 2:
            return True
    return False


def is_likely_non_blog(
    href: str | None,
    text: str | None = None,
    filters: HostFilters = DEFAULT_FILTERS,
) -> bool:
    if not href:
        return True
    host = hostname_from_url(href)
    if not host:
        return True
    if filters.is_blocked_host(host):
        return True
    if is_resource_url(href, filters.resource_exts):
        return True
    if text:
        t = text.lower()
        if any(ind in t for ind in filters.non_blog_indicators):
            return True
    return False


def is_friend_anchor(
    anchor: Anchor,
    base_host: str,
    filters: HostFilters = DEFAULT_FILTERS,
) -> bool:
    return looks_like_friend_link(
        anchor.href, anchor.text, base_host, filters
    ) and not is_likely_non_blog(anchor.href, anchor.text, filters)
