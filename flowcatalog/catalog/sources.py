# flowcatalog/catalog/sources.py
"""
Descriptor sources.

A source only produces raw records; parsing, merging and deduplication
happen in the builder. Lower `priority` values win on collisions.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

import aiohttp
import yaml
from jsonschema import ValidationError, validate

from flowcatalog.catalog.schema import CATALOG_SCHEMA
from flowcatalog.errors import SourceUnavailable
from flowcatalog.utils.io import PathLike, load_any, to_path
from flowcatalog.utils.logger import get_logger

logger = get_logger("catalog.sources")

BUNDLED_CATALOG = Path(__file__).resolve().parent.parent / "data" / "nodes.json"

STATIC_PRIORITY = 0
REMOTE_PRIORITY = 10


class CatalogSource(Protocol):
    source_id: str
    priority: int

    async def load(self) -> List[Dict[str, Any]]:
        ...


def extract_records(payload: Any, source_id: str) -> List[Dict[str, Any]]:
    """Accept a bare list of records or an object with a 'nodes' list."""
    try:
        validate(instance=payload, schema=CATALOG_SCHEMA)
    except ValidationError as e:
        raise SourceUnavailable(f"Catalog payload has unexpected shape: {e.message}", source=source_id) from e
    if isinstance(payload, dict):
        return list(payload["nodes"])
    return list(payload)


class StaticCatalogSource:
    """Catalog shipped with the package (or any local JSON/YAML file)."""

    def __init__(
        self,
        path: Optional[PathLike] = None,
        records: Optional[Sequence[Dict[str, Any]]] = None,
        source_id: Optional[str] = None,
        priority: int = STATIC_PRIORITY,
    ):
        if path is not None and records is not None:
            raise ValueError("Pass either path or records, not both")
        self.path = to_path(path) if path is not None else (None if records is not None else BUNDLED_CATALOG)
        self._records = list(records) if records is not None else None
        self.source_id = source_id or (f"static:{self.path.name}" if self.path else "static:inline")
        self.priority = priority

    async def load(self) -> List[Dict[str, Any]]:
        if self._records is not None:
            return list(self._records)
        try:
            payload = load_any(self.path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise SourceUnavailable(f"Cannot read catalog file {self.path}: {e}", source=self.source_id) from e
        records = extract_records(payload, self.source_id)
        logger.debug("Loaded %d record(s) from %s", len(records), self.path)
        return records

    def __repr__(self) -> str:
        return f"StaticCatalogSource({self.source_id!r})"


class RemoteCatalogSource:
    """Refreshable catalog served over HTTP, same record shape as the bundled one."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        source_id: Optional[str] = None,
        priority: int = REMOTE_PRIORITY,
    ):
        self.url = url
        self.timeout = timeout
        self.headers = dict(headers or {})
        self.source_id = source_id or f"remote:{url}"
        self.priority = priority

    async def load(self) -> List[Dict[str, Any]]:
        try:
            async with aiohttp.ClientSession(headers=self.headers) as session:
                async with session.get(
                    self.url,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise SourceUnavailable(
                            f"Remote catalog returned HTTP {response.status}", source=self.source_id
                        )
                    body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SourceUnavailable(f"Remote catalog request failed: {e}", source=self.source_id) from e

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise SourceUnavailable(f"Remote catalog returned invalid JSON: {e}", source=self.source_id) from e

        records = extract_records(payload, self.source_id)
        logger.debug("Fetched %d record(s) from %s", len(records), self.url)
        return records

    def __repr__(self) -> str:
        return f"RemoteCatalogSource({self.url!r})"
