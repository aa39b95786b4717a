from __future__ import annotations

from dataclasses import dataclass
from typing import Final
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .classify import Anchor
from .urls import normalize_url

# Many servers answer 200 for custom error pages, so the body text decides.
NOT_FOUND_INDICATORS: Final[tuple[str, ...]] = (
    "404",
    "not found",
    "404 not found",
    "页面不存在",
    "页面未找到",
    "找不到",
    "未找到",
    "页面不存在或已删除",
)

_SKIP_HREF_PREFIXES = ("#", "mailto:", "javascript:", "tel:")


@dataclass(frozen=True)
class PageMeta:
    title: str | None = None
    description: str | None = None


def soft_404_indicator(
    body_text: str | None,
    indicators: tuple[str, ...] = NOT_FOUND_INDICATORS,
) -> str | None:
    """Return the first not-found indicator present in ``body_text``."""

    text = (body_text or "").lower()
    for ind in indicators:
        if ind in text:
            return ind
    return None


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    body = soup.body or soup
    return body.get_text(" ", strip=True)


def _attr_text(val: object) -> str:
    if isinstance(val, list):
        if not val:
            return ""
        return str(val[0])
    return str(val or "")


def extract_anchors(html: str, *, page_url: str) -> list[Anchor]:
    soup = BeautifulSoup(html, "html.parser")

    effective_base = page_url
    base = soup.find("base")
    if base is not None:
        base_href = _attr_text(base.get("href")).strip()
        if base_href:
            effective_base = urljoin(page_url, base_href)

    out: list[Anchor] = []
    for a in soup.select("a[href]"):
        href = _attr_text(a.get("href")).strip()
        if not href or href.lower().startswith(_SKIP_HREF_PREFIXES):
            continue
        try:
            abs_url = normalize_url(urljoin(effective_base, href))
        except ValueError:
            continue
        text = a.get_text(" ", strip=True) or _attr_text(a.get("title")).strip()
        out.append(Anchor(href=abs_url, text=text))
    return out


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = _attr_text(tag.get("content")).strip()
    return content or None


def extract_page_meta(html: str) -> PageMeta:
    soup = BeautifulSoup(html, "html.parser")
    title = None
    if soup.title and soup.title.get_text(strip=True):
        title = soup.title.get_text(" ", strip=True)
    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )
    return PageMeta(title=title, description=description)


def extract_site_name(html: str) -> str | None:
    """Read the site's own name, preferring OpenGraph over ``<title>``."""

    soup = BeautifulSoup(html, "html.parser")
    for attrs in (
        {"property": "og:site_name"},
        {"property": "og:title"},
        {"name": "title"},
    ):
        content = _meta_content(soup, **attrs)
        if content:
            return content
    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text(" ", strip=True)
    return None
