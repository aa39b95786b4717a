from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from friendlinks.classify import Anchor
from friendlinks.content import PageMeta
from friendlinks.prober import ProbeResult
from friendlinks.urls import hostname_from_url


@dataclass
class FakeSitePage:
    body: str = ""
    anchors: list[dict] = field(default_factory=list)
    html: str = "<html><head><title>Page</title></head><body></body></html>"


class FakePage:
    def __init__(self, browser: "FakeBrowser") -> None:
        self._browser = browser
        self.url = ""

    def _current(self) -> FakeSitePage:
        return self._browser.pages[self.url]

    async def goto(self, url: str, *, wait_until: str, timeout: float) -> None:
        self._browser.gotos.append((url, wait_until, timeout))
        if url in self._browser.timeouts:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded.")
        if url not in self._browser.pages:
            raise PlaywrightError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.url = url

    async def text_content(self, selector: str) -> str | None:
        assert selector == "body"
        return self._current().body

    async def eval_on_selector_all(self, selector: str, expression: str) -> list[dict]:
        assert selector == "a"
        return list(self._current().anchors)

    async def content(self) -> str:
        return self._current().html


class FakeContext:
    def __init__(self, browser: "FakeBrowser") -> None:
        self._browser = browser
        self.closed = False

    async def new_page(self) -> FakePage:
        return FakePage(self._browser)

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Just enough of playwright's Browser for BrowserProber."""

    def __init__(
        self,
        pages: dict[str, FakeSitePage] | None = None,
        *,
        timeouts: set[str] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.timeouts = timeouts or set()
        self.contexts: list[FakeContext] = []
        self.gotos: list[tuple[str, str, float]] = []

    async def new_context(self) -> FakeContext:
        ctx = FakeContext(self)
        self.contexts.append(ctx)
        return ctx


class FakeProber:
    """Serves canned friend pages keyed by URL; anything else fails."""

    def __init__(
        self,
        pages: dict[str, list[tuple[str, str]]] | None = None,
        *,
        site_names: dict[str, str] | None = None,
        meta: dict[str, PageMeta] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.site_names = site_names or {}
        self.meta = meta or {}
        self.calls: list[str] = []

    async def find_friend_page_anchors(
        self, page_url: str, base_host: str
    ) -> ProbeResult | None:
        self.calls.append(page_url)
        anchors = self.pages.get(page_url)
        if anchors is None:
            return None
        return ProbeResult(
            anchors=[Anchor(href=h, text=t) for h, t in anchors],
            meta=self.meta.get(page_url, PageMeta(title="Friends")),
        )

    async def fetch_site_name(self, page_url: str) -> str:
        host = hostname_from_url(page_url) or page_url
        return self.site_names.get(host, host)

    def probed_hosts(self) -> list[str]:
        out: list[str] = []
        for url in self.calls:
            host = hostname_from_url(url)
            if host and host not in out:
                out.append(host)
        return out


def write_record(
    links_dir: Path,
    host: str,
    *,
    friends: list[tuple[str, str]] = (),
    url: str | None = None,
) -> Path:
    data = {
        "site": {
            "name": host,
            "url": url or f"https://{host}/",
            "description": f"{host} blog",
            "friends": [{"name": n, "url": u} for n, u in friends],
        }
    }
    path = links_dir / f"{host}.yml"
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
    return path
