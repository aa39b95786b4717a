from __future__ import annotations

import re

from .urls import hostname_from_url

_WS = re.compile(r"\s+")
_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
)
_INLINE_URL = re.compile(r"https?://\S+", re.IGNORECASE)
_INLINE_WWW = re.compile(r"www\.\S+", re.IGNORECASE)
_SEPARATORS = re.compile(r"[|\-–—:：·•/\\<>\[\]()]+")
# Word chars plus CJK, dots, hyphens, whitespace and both apostrophe forms.
_DISALLOWED = re.compile(r"[^\w.\u4e00-\u9fff\s\-\u2019']")

MAX_LABEL_LEN = 200
MAX_NAME_LEN = 60


def sanitize_label(text: str | None) -> str:
    if not text:
        return ""
    out = _WS.sub(" ", text).strip()
    for entity, repl in _ENTITIES:
        out = out.replace(entity, repl)
    return out[:MAX_LABEL_LEN].strip()


def _segment_score(segment: str) -> int:
    return sum(1 for ch in segment if ch.isalnum() or ch in "_-")


def extract_friend_name(text: str | None, href: str) -> str:
    """Pick a presentable site name out of noisy anchor text.

    ``"Home | Alice's Blog - est. 2020"`` becomes ``"Alice's Blog"``. The
    hostname of ``href`` is returned whenever nothing usable is left.
    """

    fallback = hostname_from_url(href) or href or ""

    s = sanitize_label(text)
    if not s:
        return fallback

    s = _INLINE_URL.sub("", s)
    s = _INLINE_WWW.sub("", s)

    parts = [p.strip() for p in _SEPARATORS.split(s)]
    parts = [p for p in parts if p]
    if len(parts) > 1:
        # sorted() is stable, so the first segment wins ties.
        s = sorted(parts, key=_segment_score, reverse=True)[0]
    elif parts:
        s = parts[0]

    s = _INLINE_URL.sub("", s)
    s = _DISALLOWED.sub("", s).strip()

    if len(s) <= 1:
        return fallback

    if len(s) > MAX_NAME_LEN:
        s = s[:MAX_NAME_LEN].strip()
    return s
