from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union
from urllib.parse import urljoin

import yaml
from tqdm import tqdm

from .classify import Anchor, is_friend_anchor
from .content import PageMeta
from .filters import DEFAULT_FILTERS, HostFilters
from .labels import extract_friend_name, sanitize_label
from .prober import BrowserProber, HttpProber, ProbeResult
from .records import (
    FriendLink,
    RecordFormatError,
    SiteRecord,
    list_record_files,
    load_record,
    record_exists,
    record_path,
)
from .state import VisitedState, atomic_write_text
from .urls import hostname_from_url
from .writer import AsyncWriteQueue

logger = logging.getLogger(__name__)

Prober = Union[BrowserProber, HttpProber]

FRIEND_PAGE_CANDIDATES: tuple[str, ...] = (
    "/links",
    "/links.html",
    "/friend",
    "/friends",
    "/friends.html",
    "/peer",
    "/index.php/links.html",
    "/friend-links",
    "/friend_link",
    "/friend-links.html",
    "/page/友链",
    "/about",
    "/about-us",
    "/about.html",
    "/about-me",
    "/关于",
    "/peers",
)

VISITED_FILENAME = "visited.json"


def utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass(frozen=True)
class FrontierEntry:
    url: str
    depth: int


@dataclass
class CrawlConfig:
    links_dir: Path
    visited_file: Path | None = None
    max_depth: int = 2
    dry_run: bool = False
    resume: bool = False
    async_write: bool = False
    write_concurrency: int = 4
    delay_s: float = 0.5
    filters: HostFilters = DEFAULT_FILTERS
    candidate_paths: tuple[str, ...] = FRIEND_PAGE_CANDIDATES

    def __post_init__(self) -> None:
        if self.visited_file is None:
            self.visited_file = self.links_dir / VISITED_FILENAME


@dataclass
class _FriendPage:
    url: str
    meta: PageMeta
    anchors: list[Anchor] = field(default_factory=list)


class Crawler:
    """Breadth-first discovery of blogs through their friend-link pages.

    All run state (frontier, visited and discovered hosts, pending writes) is
    owned by the instance, so independent crawls can share a process.
    """

    def __init__(self, *, prober: Prober, config: CrawlConfig) -> None:
        self.prober = prober
        self.cfg = config
        self.filters = config.filters
        self.links_dir = config.links_dir

        self.visited_state = VisitedState(
            config.visited_file or config.links_dir / VISITED_FILENAME
        )
        self.visited: set[str] = set()
        self.discovered: dict[str, str] = {}
        self.queue: deque[FrontierEntry] = deque()
        self.writer: AsyncWriteQueue | None = (
            AsyncWriteQueue(concurrency=config.write_concurrency)
            if config.async_write and not config.dry_run
            else None
        )
        self.written: list[str] = []
        self.phase = "idle"
        self._stats: Counter[str] = Counter()

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    def _has_record(self, host: str) -> bool:
        if record_exists(self.links_dir, host):
            return True
        return self.writer is not None and self.writer.is_reserved(
            record_path(self.links_dir, host)
        )

    def seed(self) -> list[FrontierEntry]:
        """Collect depth-0 entries from the existing records.

        Raises OSError when the links directory cannot be listed; unreadable
        record files are logged and skipped.
        """

        files = list_record_files(self.links_dir)
        logger.info("Found %d record files in %s", len(files), self.links_dir)

        seeds: list[FrontierEntry] = []
        seen: set[str] = set()
        for path in tqdm(files, desc="Scanning records", unit="file", disable=None):
            try:
                record = load_record(path)
            except (OSError, yaml.YAMLError, RecordFormatError) as e:
                logger.warning("Failed to parse %s: %s", path.name, e)
                self._stats["bad_record"] += 1
                continue

            for url in [f.url for f in record.friends] + [record.url]:
                host = hostname_from_url(url)
                if not host or host in seen:
                    continue
                if self.filters.is_blocked_host(host):
                    continue
                if host in self.visited or record_exists(self.links_dir, host):
                    continue
                seen.add(host)
                seeds.append(FrontierEntry(url=url, depth=0))

        logger.info("Discovered %d seed URLs", len(seeds))
        if seeds:
            logger.debug(
                "  Sample seeds: %s", ", ".join(s.url for s in seeds[:10])
            )
        return seeds

    def _save_visited(self) -> None:
        if self.cfg.dry_run:
            return
        try:
            self.visited_state.save(self.visited)
        except OSError as e:
            logger.warning(
                "Failed to persist visited file %s: %s", self.visited_state.path, e
            )

    def _candidate_urls(self, url: str) -> list[str]:
        out: list[str] = []
        for path in self.cfg.candidate_paths:
            attempt = urljoin(url, path)
            if attempt not in out:
                out.append(attempt)
        if url not in out:
            out.append(url)
        return out

    async def _find_friend_page(self, url: str, base_host: str) -> _FriendPage | None:
        # The entry URL itself is the last candidate.
        for attempt in self._candidate_urls(url):
            logger.debug("Trying candidate friend page: %s", attempt)
            result: ProbeResult | None = await self.prober.find_friend_page_anchors(
                attempt, base_host
            )
            if result is None:
                continue
            friendly = [
                a
                for a in result.anchors
                if is_friend_anchor(a, base_host, self.filters)
            ]
            if friendly:
                return _FriendPage(url=attempt, meta=result.meta, anchors=friendly)
        return None

    def _friend_links(self, anchors: list[Anchor], base_host: str) -> list[FriendLink]:
        by_host: dict[str, FriendLink] = {}
        for a in anchors:
            host = hostname_from_url(a.href)
            if not host or host == base_host or self.filters.is_blocked_host(host):
                continue
            name = extract_friend_name(a.text or None, a.href) or host
            prev = by_host.get(host)
            # An avatar link usually precedes the named one; keep the real name.
            if prev is None or (prev.name == host and name != host):
                by_host[host] = FriendLink(name=name, url=a.href)
        return list(by_host.values())

    async def _build_record(
        self, url: str, base_host: str, meta: PageMeta, friends: list[FriendLink]
    ) -> SiteRecord:
        # The site's own name beats the friend page's title.
        site_name = await self.prober.fetch_site_name(url)
        name_raw = site_name or meta.title or url
        name = sanitize_label(name_raw) or base_host
        desc_raw = meta.description if meta.description is not None else name_raw
        description = sanitize_label(desc_raw) or name
        return SiteRecord(
            name=name, url=url, description=description, friends=tuple(friends)
        )

    def _persist(self, host: str, record: SiteRecord) -> None:
        target = record_path(self.links_dir, host)
        if self.cfg.dry_run:
            logger.info("[DRY] Would write record for %s -> %s", host, target)
            self._stats["would_write"] += 1
            return
        content = record.to_yaml()
        if self.writer is not None:
            if self.writer.enqueue(target, content):
                self._stats["queued_write"] += 1
            return
        try:
            atomic_write_text(target, content)
        except (OSError, UnicodeError) as e:
            logger.warning("Failed to write %s: %s", target, e)
            self._stats["write_failed"] += 1
            return
        self.written.append(host)
        self._stats["written"] += 1
        logger.info("Wrote record for %s -> %s", host, target)

    def _enqueue_friends(
        self, anchors: list[Anchor], base_host: str, depth: int
    ) -> None:
        for a in anchors:
            host = hostname_from_url(a.href)
            if not host or host == base_host or self.filters.is_blocked_host(host):
                continue
            if self._has_record(host):
                logger.debug("Skipping %s: record already present", host)
                continue
            if host in self.discovered or host in self.visited:
                continue
            if depth + 1 > self.cfg.max_depth:
                self._stats["beyond_depth"] += 1
                continue
            self.discovered[host] = a.href
            self.queue.append(FrontierEntry(url=a.href, depth=depth + 1))
            self._stats["enqueued"] += 1
            logger.debug("Enqueued %s (host=%s, depth=%d)", a.href, host, depth + 1)

    async def process(self, entry: FrontierEntry) -> bool:
        """Handle one frontier entry; True when the host was actually probed."""

        if entry.depth > self.cfg.max_depth:
            self._stats["skipped_depth"] += 1
            return False
        base_host = hostname_from_url(entry.url)
        if not base_host:
            self._stats["invalid_url"] += 1
            return False
        if base_host in self.visited:
            logger.debug("Skipping %s because it was already visited", base_host)
            self._stats["skipped_visited"] += 1
            return False

        # Marked before probing so nothing re-enqueues it meanwhile.
        self.visited.add(base_host)
        self._save_visited()
        self._stats["visited"] += 1

        logger.info("Crawling (%d) %s", entry.depth, entry.url)
        page = await self._find_friend_page(entry.url, base_host)
        if page is None:
            logger.info("No friend anchors found for %s", entry.url)
            self._stats["no_anchors"] += 1
            return True

        logger.debug("Using friend page %s (%d anchors)", page.url, len(page.anchors))
        friends = self._friend_links(page.anchors, base_host)
        if friends and not self._has_record(base_host):
            record = await self._build_record(entry.url, base_host, page.meta, friends)
            self._persist(base_host, record)

        self._enqueue_friends(page.anchors, base_host, entry.depth)
        return True

    async def crawl(self) -> dict:
        started_at = utc_iso()

        self.phase = "seeding"
        if self.cfg.resume:
            previous = self.visited_state.load()
            self.visited.update(previous)
            logger.info("Resuming with %d visited hosts", len(previous))

        for entry in self.seed():
            host = hostname_from_url(entry.url)
            if host is None or host in self.discovered:
                continue
            self.discovered[host] = entry.url
            self.queue.append(entry)

        logger.info(
            "Starting BFS with %d seeds, depth=%d, dry_run=%s",
            len(self.queue),
            self.cfg.max_depth,
            self.cfg.dry_run,
        )

        self.phase = "crawling"
        try:
            while self.queue:
                entry = self.queue.popleft()
                logger.debug(
                    "Queue pop: %s (depth=%d, remaining=%d)",
                    entry.url,
                    entry.depth,
                    len(self.queue),
                )
                probed = await self.process(entry)
                if probed and self.queue and self.cfg.delay_s > 0:
                    await asyncio.sleep(self.cfg.delay_s)
        finally:
            self.phase = "draining"
            if self.writer is not None:
                await self.writer.close()
                self.written.extend(p.stem for p in self.writer.written)
                self._stats["written"] += len(self.writer.written)
                self._stats["write_failed"] += len(self.writer.failed)
            self._save_visited()
            self.phase = "done"

        logger.info("Crawling finished. Discovered: %d", len(self.discovered))
        return {
            "started_at": started_at,
            "finished_at": utc_iso(),
            "config": {
                "links_dir": str(self.links_dir),
                "visited_file": str(self.visited_state.path),
                "max_depth": self.cfg.max_depth,
                "dry_run": self.cfg.dry_run,
                "resume": self.cfg.resume,
                "async_write": self.cfg.async_write,
                "write_concurrency": self.cfg.write_concurrency,
                "delay_s": self.cfg.delay_s,
            },
            "stats": dict(self._stats),
            "discovered": len(self.discovered),
            "written": list(self.written),
            "remaining_queue": len(self.queue),
        }
