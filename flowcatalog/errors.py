# flowcatalog/errors.py
"""
Exception taxonomy.

Catalog errors describe a degraded catalog; they are raised only when no
usable snapshot exists and are otherwise carried as warning metadata.
Input errors reject a single request. Validation findings are plain data
(see validation/findings.py) and never appear here.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class FlowCatalogError(Exception):
    """Base class for every error raised by flowcatalog."""


class ConfigError(FlowCatalogError):
    """Settings could not be loaded or parsed."""


# ---------- Catalog errors ----------

class CatalogError(FlowCatalogError):
    code = "catalog-error"

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.source:
            payload["source"] = self.source
        return payload


class SourceUnavailable(CatalogError):
    code = "source-unavailable"


class StaleRegistry(CatalogError):
    code = "stale-registry"


# ---------- Input errors ----------

class InputError(FlowCatalogError):
    code = "input-error"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class UnknownType(InputError):
    code = "unknown-type"

    def __init__(self, type_name: str, suggestions: Sequence[str] = ()):
        self.type_name = type_name
        self.suggestions: List[str] = list(suggestions)
        msg = f"Unknown node type {type_name!r}"
        if self.suggestions:
            msg += f" (did you mean {self.suggestions[0]!r}?)"
        super().__init__(msg)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["type"] = self.type_name
        payload["suggestions"] = self.suggestions
        return payload


class MalformedRequest(InputError):
    code = "malformed-request"
