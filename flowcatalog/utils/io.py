# flowcatalog/utils/io.py
"""
File helpers for catalogs, settings and workflow graphs.

Documents are JSON or YAML, picked by suffix. Writes go through a temp
file next to the target so a reader never sees a half-written graph.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Union

import yaml

PathLike = Union[str, Path]


def to_path(p: PathLike) -> Path:
    return p if isinstance(p, Path) else Path(p)


def read_json(path: PathLike) -> Any:
    with to_path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def read_yaml(path: PathLike) -> Any:
    with to_path(path).open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


_LOADERS: Dict[str, Callable[[PathLike], Any]] = {
    ".json": read_json,
    ".yaml": read_yaml,
    ".yml": read_yaml,
}


def load_any(path: PathLike) -> Any:
    """
    Load a .json / .yaml / .yml document.
    Raises ValueError for any other suffix; OSError and parser errors propagate.
    """
    p = to_path(path)
    loader = _LOADERS.get(p.suffix.lower())
    if loader is None:
        supported = ", ".join(sorted(_LOADERS))
        raise ValueError(f"Unsupported extension {p.suffix or '(none)'} for {p} (expected {supported})")
    return loader(p)


def write_json(path: PathLike, data: Any, indent: int = 2) -> Path:
    """Write pretty JSON via <name>.tmp and an atomic replace; parents are created."""
    p = to_path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=indent)
        f.write("\n")
    tmp.replace(p)
    return p
