from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a sibling temp file and a rename."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(text, encoding="utf-8", newline="\n")
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


@dataclass
class VisitedState:
    """Hosts already crawled, persisted as a JSON array of strings."""

    path: Path

    def load(self) -> set[str]:
        # A missing or corrupt file means starting fresh.
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except FileNotFoundError:
            return set()
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable visited file %s: %s", self.path, e)
            return set()
        if not isinstance(data, list):
            logger.warning("Ignoring visited file %s: not a JSON array", self.path)
            return set()
        return {h for h in data if isinstance(h, str) and h}

    def save(self, hosts: Iterable[str]) -> set[str]:
        """Union ``hosts`` with what is already on disk and write it back.

        Returns the merged set. Saving never drops entries that were durable
        before the call.
        """

        merged = self.load()
        merged.update(hosts)
        atomic_write_text(
            self.path,
            json.dumps(sorted(merged), indent=2, ensure_ascii=False) + "\n",
        )
        logger.debug("Saved %d visited hosts to %s", len(merged), self.path)
        return merged
