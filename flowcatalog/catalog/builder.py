# flowcatalog/catalog/builder.py
"""
Registry builder.

Loads raw records from every source in priority order, parses them, merges
colliding type names (first source wins, loser aliases are kept) and
publishes a new CatalogSnapshot (store + search index) in one assignment.

Refreshes are single-flight: concurrent callers for the same source set,
from any thread or event loop, await one shared future instead of starting
another remote fetch.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from flowcatalog.catalog.model import NodeDescriptor, canonical_key, parse_descriptor
from flowcatalog.catalog.sources import CatalogSource
from flowcatalog.catalog.store import DescriptorStore
from flowcatalog.errors import CatalogError, MalformedRequest, SourceUnavailable, StaleRegistry
from flowcatalog.search.index import SearchIndex
from flowcatalog.utils.logger import get_logger

logger = get_logger("catalog.builder")


@dataclass
class BuildReport:
    version: int = 0
    source_counts: Dict[str, int] = field(default_factory=dict)
    total: int = 0
    merged_aliases: int = 0
    collisions: int = 0
    skipped: List[str] = field(default_factory=list)
    warnings: List[CatalogError] = field(default_factory=list)
    stale: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "source_counts": dict(self.source_counts),
            "total": self.total,
            "merged_aliases": self.merged_aliases,
            "collisions": self.collisions,
            "skipped": list(self.skipped),
            "warnings": [w.to_dict() for w in self.warnings],
            "stale": self.stale,
        }


@dataclass(frozen=True)
class CatalogSnapshot:
    store: DescriptorStore
    index: SearchIndex

    @property
    def version(self) -> int:
        return self.store.version


def build_store(
    loaded: Sequence[Tuple[str, List[Dict[str, Any]]]],
    version: int = 1,
) -> Tuple[DescriptorStore, BuildReport]:
    """
    Merge already-loaded records, given as (source_id, records) pairs in
    priority order (highest priority first).
    """
    report = BuildReport(version=version)
    merged: Dict[str, NodeDescriptor] = {}

    for source_id, records in loaded:
        count = 0
        for record in records:
            try:
                descriptor = parse_descriptor(record)
            except MalformedRequest as e:
                logger.warning("[%s] skipping record: %s", source_id, e)
                report.skipped.append(f"{source_id}: {e}")
                continue
            count += 1
            key = canonical_key(descriptor.name)
            winner = merged.get(key)
            if winner is None:
                merged[key] = descriptor
                continue
            report.collisions += 1
            updated = winner.with_aliases(descriptor.aliases)
            report.merged_aliases += len(updated.aliases) - len(winner.aliases)
            merged[key] = updated
            logger.debug("[%s] %s already provided; merged aliases", source_id, descriptor.name)
        report.source_counts[source_id] = count
        logger.info("[%s] %d descriptor(s) loaded", source_id, count)

    store = DescriptorStore(merged.values(), version=version, source_counts=report.source_counts)
    report.total = len(store)
    logger.info(
        "Catalog v%d built: %d node type(s), %d collision(s), %d alias(es) merged",
        version, report.total, report.collisions, report.merged_aliases,
    )
    return store, report


class CatalogRegistry:
    """
    Owns the published snapshot. Readers take `registry.snapshot` once per
    request and work against that object; the builder is the only writer.
    """

    def __init__(self, sources: Sequence[CatalogSource], timeout: Optional[float] = None):
        if not sources:
            raise ValueError("CatalogRegistry needs at least one source")
        self.sources: List[CatalogSource] = sorted(sources, key=lambda s: s.priority)
        self.timeout = timeout
        self._snapshot: Optional[CatalogSnapshot] = None
        self._lock = threading.Lock()
        self._inflight: Dict[Tuple[str, ...], concurrent.futures.Future] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._version = 0
        self.last_report: Optional[BuildReport] = None

    @property
    def source_key(self) -> Tuple[str, ...]:
        return tuple(s.source_id for s in self.sources)

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> CatalogSnapshot:
        snap = self._snapshot
        if snap is None:
            raise SourceUnavailable("Catalog has not been built yet")
        return snap

    @property
    def stale(self) -> bool:
        return bool(self.last_report and self.last_report.stale)

    async def refresh(self, timeout: Optional[float] = None) -> CatalogSnapshot:
        """
        Rebuild from all sources. Joins an in-flight build if one exists,
        including one started from another thread's event loop.
        On caller timeout or source failure the last good snapshot is kept.
        """
        key = self.source_key
        with self._lock:
            shared = self._inflight.get(key)
            leader = shared is None
            if leader:
                shared = concurrent.futures.Future()
                self._inflight[key] = shared
        if leader:
            task = asyncio.ensure_future(self._run_build(key, shared))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            logger.debug("Joining in-flight catalog build")

        timeout = timeout if timeout is not None else self.timeout
        waiter = asyncio.wrap_future(shared)
        try:
            if timeout is None:
                return await asyncio.shield(waiter)
            return await asyncio.wait_for(asyncio.shield(waiter), timeout)
        except asyncio.TimeoutError:
            if self._snapshot is None:
                raise SourceUnavailable(f"Catalog build timed out after {timeout}s") from None
            warning = StaleRegistry(f"Refresh timed out after {timeout}s; serving catalog v{self._snapshot.version}")
            logger.warning(warning.message)
            self._mark_stale(warning)
            return self._snapshot
        except SourceUnavailable as e:
            # the shared build was interrupted; another one may have published since
            snap = self._snapshot
            if snap is None:
                raise
            self._mark_stale(StaleRegistry(f"{e.message}; serving catalog v{snap.version}"))
            return snap

    def build_sync(self, timeout: Optional[float] = None) -> CatalogSnapshot:
        """Blocking build for callers that are not inside an event loop."""
        return asyncio.run(self.refresh(timeout=timeout))

    def ensure_snapshot(self, timeout: Optional[float] = None) -> CatalogSnapshot:
        """Current snapshot, building it first (or joining that build) when there is none."""
        snap = self._snapshot
        if snap is not None:
            return snap
        return self.build_sync(timeout=timeout)

    async def _run_build(self, key: Tuple[str, ...], shared: concurrent.futures.Future) -> None:
        outcome: Optional[CatalogSnapshot] = None
        error: Optional[BaseException] = None
        try:
            outcome = await self._build()
        except asyncio.CancelledError:
            error = SourceUnavailable("Catalog build was interrupted")
            raise
        except Exception as e:
            error = e
        finally:
            with self._lock:
                if self._inflight.get(key) is shared:
                    del self._inflight[key]
            if error is not None:
                shared.set_exception(error)
            else:
                shared.set_result(outcome)

    async def _load(self, source: CatalogSource) -> List[Dict[str, Any]]:
        per_source = getattr(source, "timeout", None)
        try:
            if per_source:
                return await asyncio.wait_for(source.load(), per_source)
            return await source.load()
        except asyncio.TimeoutError as e:
            raise SourceUnavailable(f"Timed out after {per_source}s", source=source.source_id) from e

    async def _build(self) -> CatalogSnapshot:
        started = time.perf_counter()
        results = await asyncio.gather(*(self._load(s) for s in self.sources), return_exceptions=True)

        loaded: List[Tuple[str, List[Dict[str, Any]]]] = []
        failures: List[CatalogError] = []
        for source, result in zip(self.sources, results):
            if isinstance(result, SourceUnavailable):
                failures.append(result)
                logger.warning("[%s] unavailable: %s", source.source_id, result.message)
            elif isinstance(result, BaseException):
                raise result
            else:
                loaded.append((source.source_id, result))

        if failures and self._snapshot is not None:
            warning = StaleRegistry(
                f"{len(failures)} source(s) failed; keeping catalog v{self._snapshot.version}"
            )
            logger.warning(warning.message)
            self._mark_stale(warning, *failures)
            return self._snapshot

        if not loaded:
            raise SourceUnavailable(
                "All catalog sources failed: " + "; ".join(f"{f.source}: {f.message}" for f in failures)
            )

        store, report = build_store(loaded, version=self._version + 1)
        report.warnings.extend(failures)
        snapshot = CatalogSnapshot(store=store, index=SearchIndex(store))

        # publish
        self._version = store.version
        self._snapshot = snapshot
        self.last_report = report
        logger.info("Published catalog v%d in %.1f ms", store.version, (time.perf_counter() - started) * 1000)
        return snapshot

    def _mark_stale(self, *warnings: CatalogError) -> None:
        previous = self.last_report or BuildReport(version=self._version)
        self.last_report = BuildReport(
            version=previous.version,
            source_counts=dict(previous.source_counts),
            total=previous.total,
            merged_aliases=previous.merged_aliases,
            collisions=previous.collisions,
            skipped=list(previous.skipped),
            warnings=list(warnings),
            stale=True,
        )
