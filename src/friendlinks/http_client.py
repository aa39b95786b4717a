from __future__ import annotations

import time
from dataclasses import dataclass

import requests
from requests import exceptions as req_exc

from .urls import normalize_url

TRANSIENT_HTTP_STATUSES = {429, 500, 502, 503, 504}

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) friendlinks/0.1"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
}


def _retry_after_seconds(headers: dict[str, str]) -> float | None:
    retry_after = headers.get("Retry-After")
    if not retry_after:
        return None
    try:
        return float(retry_after)
    except ValueError:
        return None


def _pick_encoding(resp: requests.Response) -> str | None:
    # requests falls back to ISO-8859-1 for text/* without a charset.
    if resp.encoding and resp.encoding.lower() != "iso-8859-1":
        return resp.encoding
    return resp.apparent_encoding or resp.encoding


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    headers: dict[str, str]
    body: bytes
    encoding: str | None = None

    @property
    def text(self) -> str:
        try:
            return self.body.decode(self.encoding or "utf-8", errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")


class HttpClient:
    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: float = 30,
        max_retries: int = 0,
        backoff_base_s: float = 1.0,
    ) -> None:
        self._session = session
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s

    def get(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> FetchResult:
        normalized = normalize_url(url)
        merged = dict(DEFAULT_HEADERS)
        merged.update(headers or {})
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.get(
                    normalized,
                    timeout=self._timeout_s,
                    headers=merged,
                    allow_redirects=True,
                )

                if (
                    resp.status_code in TRANSIENT_HTTP_STATUSES
                    and attempt < self._max_retries
                ):
                    retry_after = _retry_after_seconds(dict(resp.headers))
                    wait_s = (
                        retry_after
                        if retry_after is not None
                        else self._backoff_base_s * (2**attempt)
                    )
                    time.sleep(wait_s)
                    continue

                # Error pages are returned too; callers decide what a 404 means.
                return FetchResult(
                    url=normalized,
                    final_url=str(resp.url),
                    status_code=int(resp.status_code),
                    headers={k: str(v) for k, v in resp.headers.items()},
                    body=resp.content,
                    encoding=_pick_encoding(resp),
                )
            except req_exc.RequestException as e:
                last_error = e
                if attempt >= self._max_retries:
                    break
                time.sleep(self._backoff_base_s * (2**attempt))

        raise RuntimeError(f"Failed to fetch {normalized}: {last_error}")
