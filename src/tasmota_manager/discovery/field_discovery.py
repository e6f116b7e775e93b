"""
Discovery of the telemetry fields a device reports.
"""
import re
from typing import Dict, Iterable, Optional, Set

from ..models.field import Field, FieldKind
from ..utils.json_tools import JsonTools
from ..utils.logging import get_logger

logger = get_logger(__name__)

NUMBER_PATTERN = re.compile(r"^-?(0|[1-9]\d*)(\.\d+)?([eE][+-]?\d+)?$")


def infer_kind(text: str) -> FieldKind:
    """Infer the scalar type from the JSON spelling of a flattened value."""
    if text in ("true", "false"):
        return FieldKind.BOOLEAN
    if NUMBER_PATTERN.match(text):
        return FieldKind.NUMBER
    return FieldKind.STRING


def field_name_for(source_key: str) -> str:
    """Variable name for a flattened key; non-word characters become underscores."""
    return re.sub(r"\W", "_", source_key)


def unique_field_names(source_keys: Iterable[str]) -> Dict[str, str]:
    """
    Map each source key to a field name that no other key of the document uses.

    Keys that are already valid names keep them. Other keys get their sanitized
    name, or that name with a numeric suffix (``_2``, ``_3``, ...) when it is
    taken. Keys are handled in sorted order, so the mapping is stable.
    """
    keys = sorted(source_keys, key=lambda key: (field_name_for(key) != key, key))
    names: Dict[str, str] = {}
    taken = set()
    for key in keys:
        base = field_name_for(key)
        name, counter = base, 2
        while name in taken:
            name = f"{base}_{counter}"
            counter += 1
        if name != base:
            logger.warning(f"Field name '{base}' of '{key}' is already used, naming it '{name}'")
        taken.add(name)
        names[key] = name
    return names


class FieldDiscovery:
    """Turns a raw telemetry document into the set of fields it exposes."""

    def __init__(self, json_tools: Optional[JsonTools] = None):
        self.json_tools = json_tools or JsonTools()

    def discover(self, raw_json: str, owner_logical_name: str) -> Set[Field]:
        """
        Discover the fields of a JSON document.

        Args:
            raw_json: JSON object as returned by the device
            owner_logical_name: Logical name of the polled endpoint

        Returns:
            One field per flattened key

        Raises:
            ParseError: If raw_json is not a JSON object
        """
        values = self.json_tools.flatten_to_map(raw_json)
        names = unique_field_names(values)
        fields = {
            Field(
                name=names[key],
                source_key=key,
                inferred_kind=infer_kind(value),
                owner_logical_name=owner_logical_name,
            )
            for key, value in values.items()
        }
        logger.debug(f"Discovered {len(fields)} fields for '{owner_logical_name}'")
        return fields
