from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

RECORD_SUFFIXES = (".yml", ".yaml")


class RecordFormatError(ValueError):
    """A YAML file parsed but is not shaped like ``{site: {...}}``."""


@dataclass(frozen=True)
class FriendLink:
    name: str
    url: str


@dataclass(frozen=True)
class SiteRecord:
    name: str
    url: str
    description: str
    friends: tuple[FriendLink, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        site = asdict(self)
        site["friends"] = [asdict(f) for f in self.friends]
        return {"site": site}

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            self.to_dict(),
            allow_unicode=True,
            sort_keys=False,
            default_flow_style=False,
        )

    @classmethod
    def from_dict(cls, data: Any) -> SiteRecord:
        if not isinstance(data, dict) or not isinstance(data.get("site"), dict):
            raise RecordFormatError("expected a mapping with a 'site' key")
        site = data["site"]
        url = site.get("url")
        if not isinstance(url, str) or not url.strip():
            raise RecordFormatError("site.url is missing")

        friends: list[FriendLink] = []
        for raw in site.get("friends") or []:
            if not isinstance(raw, dict):
                continue
            f_url = raw.get("url")
            if not isinstance(f_url, str) or not f_url.strip():
                continue
            friends.append(FriendLink(name=str(raw.get("name") or ""), url=f_url))

        return cls(
            name=str(site.get("name") or ""),
            url=url,
            description=str(site.get("description") or ""),
            friends=tuple(friends),
        )


def load_record(path: Path) -> SiteRecord:
    """Parse one record file.

    Raises OSError, yaml.YAMLError or RecordFormatError.
    """

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return SiteRecord.from_dict(data)


def record_path(links_dir: Path, host: str) -> Path:
    return links_dir / f"{host}.yml"


def record_exists(links_dir: Path, host: str) -> bool:
    return any((links_dir / f"{host}{suffix}").exists() for suffix in RECORD_SUFFIXES)


def list_record_files(links_dir: Path) -> list[Path]:
    """YAML files directly under ``links_dir``, sorted by name.

    Raises OSError when the directory cannot be read.
    """

    return sorted(
        p
        for p in links_dir.iterdir()
        if p.is_file() and p.suffix.lower() in RECORD_SUFFIXES
    )
