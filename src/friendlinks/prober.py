from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator

import requests
from playwright.async_api import Browser, BrowserContext
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .classify import Anchor, is_friend_anchor
from .content import (
    NOT_FOUND_INDICATORS,
    PageMeta,
    extract_anchors,
    extract_page_meta,
    extract_site_name,
    html_to_text,
    soft_404_indicator,
)
from .filters import DEFAULT_FILTERS, HostFilters
from .http_client import HttpClient
from .labels import extract_friend_name, sanitize_label
from .urls import hostname_from_url, normalize_url, origin_of

logger = logging.getLogger(__name__)

_ANCHORS_JS = """
els => els.map(a => ({
    href: a.href || "",
    text: a.innerText || a.title || a.textContent || "",
}))
"""

_SKIP_HREF_PREFIXES = ("mailto:", "javascript:", "tel:")


@dataclass(frozen=True)
class ProbeResult:
    anchors: list[Anchor] = field(default_factory=list)
    meta: PageMeta = field(default_factory=PageMeta)


class _ProberBase:
    def __init__(
        self,
        *,
        filters: HostFilters = DEFAULT_FILTERS,
        not_found_indicators: tuple[str, ...] = NOT_FOUND_INDICATORS,
    ) -> None:
        self.filters = filters
        self.not_found_indicators = not_found_indicators

    def _is_soft_404(self, page_url: str, body_text: str) -> bool:
        indicator = soft_404_indicator(body_text, self.not_found_indicators)
        if indicator is None:
            return False
        logger.debug(
            "Skipping %s because page body contains indicator: %r",
            page_url,
            indicator,
        )
        return True

    def _log_anchors(
        self, page_url: str, base_host: str, anchors: list[Anchor]
    ) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        friendly = [
            a for a in anchors if is_friend_anchor(a, base_host, self.filters)
        ]
        logger.debug(
            "Found %d anchors (%d friend-like) on %s",
            len(anchors),
            len(friendly),
            page_url,
        )
        for a in friendly:
            logger.debug("  -> %s  [%s]", a.href, a.text[:80])

    @staticmethod
    def _clean_site_name(raw: str | None, page_url: str) -> str:
        origin = origin_of(page_url) or page_url
        host = hostname_from_url(page_url) or page_url
        cleaned = sanitize_label(raw or host) or host
        return extract_friend_name(cleaned, origin)


class BrowserProber(_ProberBase):
    """Probe pages with one shared headless browser, one context per probe."""

    def __init__(
        self,
        browser: Browser,
        *,
        timeout_s: float = 30,
        site_name_timeout_s: float = 5,
        filters: HostFilters = DEFAULT_FILTERS,
        not_found_indicators: tuple[str, ...] = NOT_FOUND_INDICATORS,
    ) -> None:
        super().__init__(filters=filters, not_found_indicators=not_found_indicators)
        self._browser = browser
        self._timeout_ms = timeout_s * 1000
        self._site_name_timeout_ms = site_name_timeout_s * 1000

    async def _new_context(self, url: str) -> BrowserContext | None:
        try:
            return await self._browser.new_context()
        except PlaywrightError as e:
            logger.warning("Could not open a browser context for %s: %s", url, e)
            return None

    async def find_friend_page_anchors(
        self, page_url: str, base_host: str
    ) -> ProbeResult | None:
        context = await self._new_context(page_url)
        if context is None:
            return None
        try:
            page = await context.new_page()
            await page.goto(
                page_url,
                wait_until="domcontentloaded",
                timeout=self._timeout_ms,
            )

            body_text = await page.text_content("body") or ""
            if self._is_soft_404(page_url, body_text):
                return None

            raw = await page.eval_on_selector_all("a", _ANCHORS_JS)
            anchors: list[Anchor] = []
            for item in raw or []:
                href = str(item.get("href") or "").strip()
                if not href or href.lower().startswith(_SKIP_HREF_PREFIXES):
                    continue
                try:
                    href = normalize_url(href)
                except ValueError:
                    continue
                anchors.append(Anchor(href=href, text=str(item.get("text") or "")))

            meta = extract_page_meta(await page.content())
            self._log_anchors(page_url, base_host, anchors)
            return ProbeResult(anchors=anchors, meta=meta)
        except PlaywrightError as e:
            logger.debug("Failed to open %s: %s", page_url, e)
            return None
        finally:
            with contextlib.suppress(PlaywrightError):
                await context.close()

    async def fetch_site_name(self, page_url: str) -> str:
        """Name of the site at ``page_url``'s origin, hostname on failure."""

        origin = origin_of(page_url)
        host = hostname_from_url(page_url) or page_url
        if origin is None:
            return host

        context = await self._new_context(origin)
        if context is None:
            return host
        try:
            page = await context.new_page()
            await page.goto(
                origin,
                wait_until="domcontentloaded",
                timeout=self._site_name_timeout_ms,
            )
            raw = extract_site_name(await page.content())
        except PlaywrightError as e:
            logger.debug("Site name lookup failed for %s: %s", origin, e)
            return host
        finally:
            with contextlib.suppress(PlaywrightError):
                await context.close()
        return self._clean_site_name(raw, page_url)


class HttpProber(_ProberBase):
    """Static-HTML probe for hosts without a headless browser.

    Scripts are not executed, so friend lists rendered client-side are missed.
    """

    def __init__(
        self,
        http: HttpClient,
        *,
        filters: HostFilters = DEFAULT_FILTERS,
        not_found_indicators: tuple[str, ...] = NOT_FOUND_INDICATORS,
    ) -> None:
        super().__init__(filters=filters, not_found_indicators=not_found_indicators)
        self._http = http

    async def _get_html(self, url: str) -> tuple[str, str] | None:
        try:
            res = await asyncio.to_thread(self._http.get, url)
        except (requests.RequestException, RuntimeError, ValueError) as e:
            logger.debug("Failed to open %s: %s", url, e)
            return None
        if res.status_code >= 400:
            logger.debug("Skipping %s (HTTP %d)", url, res.status_code)
            return None
        ctype = res.content_type.split(";", 1)[0].strip().lower()
        if ctype and ctype not in {"text/html", "application/xhtml+xml"}:
            logger.debug("Skipping %s (content type %s)", url, ctype)
            return None
        return res.text, res.final_url

    async def find_friend_page_anchors(
        self, page_url: str, base_host: str
    ) -> ProbeResult | None:
        fetched = await self._get_html(page_url)
        if fetched is None:
            return None
        html, final_url = fetched

        if self._is_soft_404(page_url, html_to_text(html)):
            return None

        anchors = extract_anchors(html, page_url=final_url)
        self._log_anchors(page_url, base_host, anchors)
        return ProbeResult(anchors=anchors, meta=extract_page_meta(html))

    async def fetch_site_name(self, page_url: str) -> str:
        origin = origin_of(page_url)
        host = hostname_from_url(page_url) or page_url
        if origin is None:
            return host
        fetched = await self._get_html(origin)
        if fetched is None:
            return host
        return self._clean_site_name(extract_site_name(fetched[0]), page_url)


@contextlib.asynccontextmanager
async def launch_browser_prober(
    *,
    timeout_s: float = 30,
    headless: bool = True,
    filters: HostFilters = DEFAULT_FILTERS,
) -> AsyncIterator[BrowserProber]:
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=headless)
        try:
            yield BrowserProber(browser, timeout_s=timeout_s, filters=filters)
        finally:
            with contextlib.suppress(PlaywrightError):
                await browser.close()


@contextlib.asynccontextmanager
async def open_http_prober(
    *,
    timeout_s: float = 30,
    retries: int = 1,
    filters: HostFilters = DEFAULT_FILTERS,
) -> AsyncIterator[HttpProber]:
    session = requests.Session()
    try:
        http = HttpClient(session, timeout_s=timeout_s, max_retries=retries)
        yield HttpProber(http, filters=filters)
    finally:
        session.close()
