# flowcatalog/search/index.py
"""
Inverted token index over one DescriptorStore snapshot.

Search scoring (per candidate):
  exact canonical name / short name / display name / alias match  -> EXACT_MATCH
  each query token that prefixes a name, alias or category token  -> PREFIX_MATCH
  each description token containing a query token                 -> DESCRIPTION_MATCH
  category filter satisfied                                        -> CATEGORY_BONUS
Ties: shorter display name, then display name, then type name.

Suggestion is filter-then-rank: a descriptor must offer an input on one of
the offered output channels and must not be a trigger.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from flowcatalog.catalog.model import Capability, NodeDescriptor, canonical_key
from flowcatalog.catalog.store import DescriptorStore
from flowcatalog.errors import MalformedRequest
from flowcatalog.search.tokenize import normalize_phrase, tokenize
from flowcatalog.utils.logger import get_logger
from flowcatalog.validation.ports import port_types_compatible

logger = get_logger("search")

EXACT_MATCH = 1000
PREFIX_MATCH = 50
DESCRIPTION_MATCH = 5
CATEGORY_BONUS = 10

PORT_MATCH = 10
CATEGORY_AFFINITY = 5
REQUIRED_SATISFIED = 3

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

NODE_KINDS = ("trigger", "regular", "webhook")


@dataclass(frozen=True)
class SearchFilters:
    category: Optional[str] = None
    node_kind: Optional[str] = None
    capabilities: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SearchFilters":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise MalformedRequest("filters must be an object")
        kind = data.get("node_kind") or data.get("nodeKind")
        if kind is not None and kind not in NODE_KINDS:
            raise MalformedRequest(f"node_kind must be one of {', '.join(NODE_KINDS)}")
        caps = tuple(data.get("capabilities") or ())
        known = {c.value for c in Capability}
        for cap in caps:
            if cap not in known:
                raise MalformedRequest(f"Unknown capability {cap!r}")
        return cls(category=data.get("category") or None, node_kind=kind, capabilities=caps)


@dataclass(frozen=True)
class SuggestContext:
    output_types: Tuple[str, ...] = ()
    category: Optional[str] = None
    type_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuggestContext":
        if not isinstance(data, dict):
            raise MalformedRequest("suggest context must be an object")
        outputs = data.get("output_types") or data.get("outputTypes") or ()
        if isinstance(outputs, str) or not all(isinstance(o, str) for o in outputs):
            raise MalformedRequest("output_types must be a list of port type names")
        return cls(
            output_types=tuple(outputs),
            category=data.get("category"),
            type_name=data.get("type") or data.get("type_name"),
        )


@dataclass
class _Entry:
    descriptor: NodeDescriptor
    exact_keys: FrozenSet[str]
    name_tokens: FrozenSet[str]
    desc_tokens: Tuple[str, ...]
    categories: FrozenSet[str] = field(default_factory=frozenset)


class SearchIndex:
    """Built once per store snapshot; read-only afterwards."""

    def __init__(self, store: DescriptorStore):
        self.store = store
        self._entries: Dict[str, _Entry] = {}
        self._postings: Dict[str, Set[str]] = {}
        self._exact: Dict[str, Set[str]] = {}
        for d in store:
            self._add(d)
        self._vocab: List[str] = sorted(self._postings)
        self._categories = {
            c for e in self._entries.values() for c in e.categories
        }
        logger.debug("Indexed %d descriptors, %d tokens", len(self._entries), len(self._vocab))

    def _add(self, d: NodeDescriptor) -> None:
        key = canonical_key(d.name)
        exact = {normalize_phrase(d.name), normalize_phrase(d.short_name), normalize_phrase(d.display_name)}
        exact.update(normalize_phrase(a) for a in d.aliases)

        name_tokens: Set[str] = set()
        for text in (d.display_name, d.short_name, d.category, d.subcategory or "", *d.aliases):
            name_tokens.update(tokenize(text))
        desc_tokens = tuple(tokenize(d.description))

        categories = {normalize_phrase(d.category)}
        if d.subcategory:
            categories.add(normalize_phrase(d.subcategory))

        self._entries[key] = _Entry(
            descriptor=d,
            exact_keys=frozenset(exact),
            name_tokens=frozenset(name_tokens),
            desc_tokens=desc_tokens,
            categories=frozenset(categories),
        )
        for phrase in exact:
            self._exact.setdefault(phrase, set()).add(key)
        for tok in name_tokens.union(desc_tokens):
            self._postings.setdefault(tok, set()).add(key)

    # ---------- lookups ----------

    def _keys_with_prefix(self, prefix: str) -> Set[str]:
        keys: Set[str] = set()
        i = bisect_left(self._vocab, prefix)
        while i < len(self._vocab) and self._vocab[i].startswith(prefix):
            keys |= self._postings[self._vocab[i]]
            i += 1
        return keys

    def _keys_with_substring(self, token: str) -> Set[str]:
        keys: Set[str] = set()
        for term in self._vocab:
            if token in term:
                keys |= self._postings[term]
        return keys

    def _passes(self, entry: _Entry, filters: SearchFilters) -> bool:
        d = entry.descriptor
        if filters.category and normalize_phrase(filters.category) not in entry.categories:
            return False
        if filters.node_kind == "trigger" and not d.is_trigger:
            return False
        if filters.node_kind == "regular" and d.is_trigger:
            return False
        if filters.node_kind == "webhook" and not d.has(Capability.WEBHOOK):
            return False
        for cap in filters.capabilities:
            if not d.has(Capability(cap)):
                return False
        return True

    @staticmethod
    def _order(d: NodeDescriptor) -> Tuple[int, str, str]:
        return (len(d.display_name), d.display_name.lower(), d.name)

    # ---------- search ----------

    def score(self, entry: _Entry, phrase: str, tokens: List[str]) -> int:
        total = 0
        if phrase in entry.exact_keys:
            total += EXACT_MATCH
        for tok in tokens:
            if any(nt.startswith(tok) for nt in entry.name_tokens):
                total += PREFIX_MATCH
            hits = sum(1 for dt in entry.desc_tokens if tok in dt)
            total += DESCRIPTION_MATCH * hits
        return total

    def search(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> List[str]:
        """Ranked canonical type names for a free-text query."""
        if not isinstance(query, str):
            raise MalformedRequest("query must be a string")
        filters = filters or SearchFilters()
        limit = max(1, min(int(limit), max_limit))

        if filters.category and normalize_phrase(filters.category) not in self._categories:
            return []

        phrase = normalize_phrase(query)
        tokens = tokenize(query)

        if not tokens:
            browse = [e.descriptor for e in self._entries.values() if self._passes(e, filters)]
            browse.sort(key=lambda d: (d.category.lower(), d.display_name.lower(), d.name))
            return [d.name for d in browse[:limit]]

        candidates: Set[str] = set(self._exact.get(phrase, ()))
        for tok in tokens:
            candidates |= self._keys_with_prefix(tok)
            candidates |= self._keys_with_substring(tok)

        scored: List[Tuple[int, NodeDescriptor]] = []
        for key in candidates:
            entry = self._entries[key]
            if not self._passes(entry, filters):
                continue
            s = self.score(entry, phrase, tokens)
            if s <= 0:
                continue
            if filters.category:
                s += CATEGORY_BONUS
            scored.append((s, entry.descriptor))

        scored.sort(key=lambda item: (-item[0], *self._order(item[1])))
        return [d.name for _, d in scored[:limit]]

    # ---------- suggestion ----------

    def suggest(
        self,
        context: SuggestContext,
        limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> List[str]:
        """Descriptors that can follow a node offering `context.output_types`."""
        limit = max(1, min(int(limit), max_limit))
        offered: Tuple[str, ...] = context.output_types
        category = context.category
        exclude: Optional[str] = None

        if context.type_name:
            current = self.store.require(context.type_name)
            exclude = canonical_key(current.name)
            if not offered:
                offered = tuple(dict.fromkeys(p.type for p in current.outputs))
            if category is None:
                category = current.category

        if not offered:
            return []

        scored: List[Tuple[int, NodeDescriptor]] = []
        for key, entry in self._entries.items():
            d = entry.descriptor
            if key == exclude or d.is_trigger:
                continue
            matched = {
                p.type for p in d.inputs
                if any(port_types_compatible(o, p.type) for o in offered)
            }
            if not matched:
                continue
            s = PORT_MATCH * len(matched)
            if category and normalize_phrase(category) == normalize_phrase(d.category):
                s += CATEGORY_AFFINITY
            if all(p.type in offered for p in d.inputs if p.required):
                s += REQUIRED_SATISFIED
            scored.append((s, d))

        scored.sort(key=lambda item: (-item[0], *self._order(item[1])))
        return [d.name for _, d in scored[:limit]]

    # ---------- autocomplete ----------

    def complete(self, prefix: str, limit: int = 10) -> List[str]:
        """Display names, aliases and categories starting with `prefix`."""
        p = normalize_phrase(prefix)
        if len(p) < 2:
            return []
        out: List[str] = []
        seen: Set[str] = set()

        def _push(values: Iterable[str]) -> None:
            for v in sorted(values, key=str.lower):
                low = v.lower()
                if low.startswith(p) and low not in seen:
                    seen.add(low)
                    out.append(v)

        descriptors = [e.descriptor for e in self._entries.values()]
        _push(d.display_name for d in descriptors)
        _push(a for d in descriptors for a in d.aliases)
        _push(self.store.categories())
        return out[:limit]
