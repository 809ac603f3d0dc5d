# flowcatalog/catalog/store.py
"""Point-in-time, read-only snapshot of node descriptors."""

from __future__ import annotations

import time
from difflib import get_close_matches
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from flowcatalog.catalog.model import NodeDescriptor, canonical_key
from flowcatalog.errors import UnknownType


class DescriptorStore:
    """
    Descriptors keyed by canonical key. Never mutated after construction;
    a refresh builds a new store and publishes it in one assignment.
    """

    def __init__(
        self,
        descriptors: Iterable[NodeDescriptor],
        version: int = 1,
        built_at: Optional[float] = None,
        source_counts: Optional[Mapping[str, int]] = None,
    ):
        by_key: Dict[str, NodeDescriptor] = {}
        for d in descriptors:
            key = canonical_key(d.name)
            if key in by_key:
                raise ValueError(f"Duplicate canonical type name {d.name!r} in store")
            by_key[key] = d
        self._by_key = MappingProxyType(dict(sorted(by_key.items())))
        self.version = version
        self.built_at = built_at if built_at is not None else time.time()
        self.source_counts = MappingProxyType(dict(source_counts or {}))

    def __len__(self) -> int:
        return len(self._by_key)

    def __iter__(self) -> Iterator[NodeDescriptor]:
        return iter(self._by_key.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and canonical_key(name) in self._by_key

    def get(self, name: str) -> Optional[NodeDescriptor]:
        return self._by_key.get(canonical_key(name))

    def require(self, name: str) -> NodeDescriptor:
        """Lookup that raises UnknownType (with close matches) for absent names."""
        found = self.get(name)
        if found is None:
            raise UnknownType(name, self.suggest_similar(name))
        return found

    def suggest_similar(self, name: str, n: int = 3) -> List[str]:
        """Find similar type names using fuzzy matching."""
        key = canonical_key(name)
        short = {canonical_key(d.short_name): d.name for d in self}
        hits = get_close_matches(key, list(self._by_key), n=n, cutoff=0.6)
        names = [self._by_key[k].name for k in hits]
        for k in get_close_matches(key.rsplit(".", 1)[-1], list(short), n=n, cutoff=0.6):
            if short[k] not in names:
                names.append(short[k])
        return names[:n]

    def categories(self) -> List[str]:
        return sorted({d.category for d in self})

    def by_category(self) -> Dict[str, List[NodeDescriptor]]:
        groups: Dict[str, List[NodeDescriptor]] = {}
        for d in self:
            groups.setdefault(d.category, []).append(d)
        for nodes in groups.values():
            nodes.sort(key=lambda d: d.display_name.lower())
        return dict(sorted(groups.items()))

    def triggers(self) -> List[NodeDescriptor]:
        return [d for d in self if d.is_trigger]

    def stats(self) -> Dict[str, object]:
        return {
            "version": self.version,
            "node_count": len(self),
            "trigger_count": len(self.triggers()),
            "categories": {cat: len(nodes) for cat, nodes in self.by_category().items()},
            "source_counts": dict(self.source_counts),
            "built_at": self.built_at,
        }
