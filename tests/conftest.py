from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def links_dir(tmp_path: Path) -> Path:
    d = tmp_path / "links"
    d.mkdir()
    return d
