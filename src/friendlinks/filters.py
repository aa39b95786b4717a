from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .urls import host_matches_set

IGNORED_HOSTS: Final[frozenset[str]] = frozenset(
    {
        "google.com",
        "gstatic.com",
        "cdn.jsdelivr.net",
        "unpkg.com",
        "raw.githubusercontent.com",
        "github.com",
        "twitter.com",
        "astro.build",
        "vercel.com",
        "netlify.com",
        "facebook.com",
        "x.com",
        "linkedin.com",
        "qq.com",
        "gov.cn",
        "bilibili.com",
        "xiaohongshu.com",
        "douyin.com",
        "csdn.net",
        "gitlab.com",
        "gitcode.cn",
        "gitee.com",
        "juejin.cn",
        "weibo.com",
        "travellings.cn",
        "baidu.com",
    }
)

AGGREGATORS: Final[frozenset[str]] = frozenset(
    {
        "joyb.cc",
        "blogscn.fun",
        "mp.weixin.qq.com",
        "sspai.com",
    }
)

RESOURCE_EXTS: Final[tuple[str, ...]] = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".pdf",
    ".zip",
    ".rar",
    ".7z",
    ".iso",
    ".dmg",
    ".mp4",
    ".webm",
    ".mp3",
    ".ogg",
)

# Anchor text hinting at downloads, mirrors, tools or static assets.
NON_BLOG_TEXT_INDICATORS: Final[tuple[str, ...]] = (
    "下载",
    "镜像",
    "工具",
    "cdn",
    "样式",
    "assets",
    "静态",
)

FRIEND_LINK_KEYWORDS: Final[tuple[str, ...]] = (
    "友链",
    "友情链接",
    "友",
    "friend",
    "blogroll",
    "blogrolls",
    "friends",
    "links",
    "blog links",
)

INTERNAL_NON_CONTENT_PREFIXES: Final[tuple[str, ...]] = (
    "/archives",
    "/tags",
    "/author",
    "/category",
    "/categories",
)


@dataclass(frozen=True)
class HostFilters:
    """Block-lists and keyword lists used by the classifier and crawler."""

    ignored_hosts: frozenset[str] = IGNORED_HOSTS
    aggregators: frozenset[str] = AGGREGATORS
    resource_exts: tuple[str, ...] = RESOURCE_EXTS
    non_blog_indicators: tuple[str, ...] = NON_BLOG_TEXT_INDICATORS
    friend_keywords: tuple[str, ...] = FRIEND_LINK_KEYWORDS
    internal_prefixes: tuple[str, ...] = INTERNAL_NON_CONTENT_PREFIXES
    strict_host_match: bool = False

    def is_blocked_host(self, host: str | None) -> bool:
        if not host:
            return False
        return host_matches_set(
            host, self.ignored_hosts, strict=self.strict_host_match
        ) or host_matches_set(host, self.aggregators, strict=self.strict_host_match)


DEFAULT_FILTERS: Final[HostFilters] = HostFilters()
