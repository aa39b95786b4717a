"""friendlinks core library.

Crawls blogs' friend-link pages breadth-first and writes one YAML record per
newly discovered site into the links directory that seeded the crawl.

Repo rules:
- Existing records are authoritative; the crawler never overwrites them.
- Each host gets at most one record, named ``<host>.yml``.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
