# flowcatalog/engine.py
"""
Facade used by the CLI (or any other tool layer).

Every call reads the published snapshot once and works against it, takes
plain data, and returns plain dicts carrying a `catalog` block:
{version, node_count, stale, warnings}. Input errors (UnknownType,
MalformedRequest) are raised; validation problems come back as findings.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from flowcatalog.catalog.builder import CatalogRegistry, CatalogSnapshot
from flowcatalog.catalog.sources import CatalogSource, RemoteCatalogSource, StaticCatalogSource
from flowcatalog.config import Settings, load_settings
from flowcatalog.errors import MalformedRequest
from flowcatalog.generator.skeleton import SkeletonHints, generate_skeleton
from flowcatalog.graph.model import WorkflowGraph
from flowcatalog.search.index import SearchFilters, SuggestContext
from flowcatalog.utils.logger import get_logger
from flowcatalog.validation.node import validate_node
from flowcatalog.validation.workflow import validate_workflow

logger = get_logger("engine")

GRAPH_FORMATS = ("plain", "n8n")


class CatalogEngine:
    def __init__(self, registry: CatalogRegistry, settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings or Settings()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CatalogEngine":
        settings = settings or load_settings()
        sources: List[CatalogSource] = [StaticCatalogSource(path=settings.static_catalog)]
        if settings.remote_url:
            sources.append(RemoteCatalogSource(settings.remote_url, timeout=settings.remote_timeout))
        logger.debug("Engine sources: %s", ", ".join(s.source_id for s in sources))
        return cls(CatalogRegistry(sources, timeout=settings.remote_timeout), settings)

    # ---------- catalog lifecycle ----------

    def _snapshot(self) -> CatalogSnapshot:
        # lazy first build for synchronous callers; async callers await refresh() first
        return self.registry.ensure_snapshot()

    def _meta(self, snap: CatalogSnapshot) -> Dict[str, Any]:
        report = self.registry.last_report
        return {
            "version": snap.version,
            "node_count": len(snap.store),
            "stale": self.registry.stale,
            "warnings": [w.to_dict() for w in report.warnings] if report else [],
        }

    async def refresh(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        snap = await self.registry.refresh(timeout=timeout)
        report = self.registry.last_report
        return {"report": report.to_dict() if report else {}, "catalog": self._meta(snap)}

    def refresh_sync(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        snap = self.registry.build_sync(timeout=timeout)
        report = self.registry.last_report
        return {"report": report.to_dict() if report else {}, "catalog": self._meta(snap)}

    # ---------- discovery ----------

    def _limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.settings.search_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise MalformedRequest("limit must be a positive integer")
        return limit

    def search(self, query: str, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        snap = self._snapshot()
        names = snap.index.search(
            query,
            SearchFilters.from_dict(filters),
            limit=self._limit(limit),
            max_limit=self.settings.search_max,
        )
        return {"query": query, "results": names, "catalog": self._meta(snap)}

    def suggest(self, context: Dict[str, Any], limit: Optional[int] = None) -> Dict[str, Any]:
        snap = self._snapshot()
        names = snap.index.suggest(
            SuggestContext.from_dict(context),
            limit=self._limit(limit),
            max_limit=self.settings.search_max,
        )
        return {"results": names, "catalog": self._meta(snap)}

    def complete(self, prefix: str, limit: int = 10) -> Dict[str, Any]:
        snap = self._snapshot()
        return {"prefix": prefix, "results": snap.index.complete(prefix, limit=limit), "catalog": self._meta(snap)}

    def describe(self, type_name: Optional[str] = None) -> Dict[str, Any]:
        """One descriptor, or catalog stats when no type is given."""
        snap = self._snapshot()
        if type_name is None:
            return {"stats": snap.store.stats(), "catalog": self._meta(snap)}
        return {"node": snap.store.require(type_name).to_dict(), "catalog": self._meta(snap)}

    # ---------- validation / assembly ----------

    def validate_node(self, type_name: str, parameters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        snap = self._snapshot()
        result = validate_node(snap.store, type_name, parameters)
        return {"type": type_name, **result.to_dict(), "catalog": self._meta(snap)}

    def validate_workflow(self, graph: Dict[str, Any], fmt: str = "plain") -> Dict[str, Any]:
        snap = self._snapshot()
        wf = _parse_graph(graph, fmt)
        result = validate_workflow(snap.store, wf)
        return {**result.to_dict(), "catalog": self._meta(snap)}

    def generate_skeleton(
        self,
        type_names: Sequence[str],
        hints: Optional[Dict[str, Any]] = None,
        fmt: str = "plain",
    ) -> Dict[str, Any]:
        _check_format(fmt)
        snap = self._snapshot()
        skeleton = generate_skeleton(snap.store, type_names, SkeletonHints.from_dict(hints))
        payload = skeleton.to_dict()
        if fmt == "n8n":
            payload["graph"] = skeleton.to_n8n()
        payload["catalog"] = self._meta(snap)
        return payload


def _check_format(fmt: str) -> None:
    if fmt not in GRAPH_FORMATS:
        raise MalformedRequest(f"format must be one of {', '.join(GRAPH_FORMATS)}")


def _parse_graph(graph: Any, fmt: str) -> WorkflowGraph:
    _check_format(fmt)
    if not isinstance(graph, dict):
        raise MalformedRequest("workflow graph must be an object")
    if fmt == "n8n":
        return WorkflowGraph.from_n8n(graph)
    return WorkflowGraph.from_dict(graph)
