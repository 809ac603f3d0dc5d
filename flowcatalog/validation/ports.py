# flowcatalog/validation/ports.py
from typing import Optional

from flowcatalog.catalog.model import PortSpec


def port_types_compatible(source_type: str, target_type: str) -> bool:
    """
    An output feeds an input only on the same channel:
    main-to-main, or identical named channels (e.g. ai_tool -> ai_tool).
    """
    return bool(source_type) and source_type == target_type


def ports_compatible(source: Optional[PortSpec], target: Optional[PortSpec]) -> bool:
    if source is None or target is None:
        return False
    return port_types_compatible(source.type, target.type)
