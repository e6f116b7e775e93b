"""
Flattening of device JSON documents into simple key/value maps.
"""
import json
from typing import Any, Dict, List, Tuple

from ..exceptions import ParseError
from .logging import get_logger

logger = get_logger(__name__)

KEY_SEPARATOR = "_"


class JsonTools:
    """
    Turns a JSON object into a flat map of scalar values.

    Nested object keys are joined with ``_`` and list elements are addressed
    by their zero-based index, so ``{"StatusSTS": {"POWER1": "ON"}}`` becomes
    ``{"StatusSTS_POWER1": "ON"}``.
    """

    def __init__(self, separator: str = KEY_SEPARATOR):
        self.separator = separator

    def parse_object(self, json_string: str) -> Dict[str, Any]:
        """
        Parse a JSON document that must be an object at the top level.

        Raises:
            ParseError: If the document is not valid JSON or not an object
        """
        try:
            data = json.loads(json_string)
        except (TypeError, ValueError) as e:
            raise ParseError(f"Invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    def flatten(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten a parsed JSON object, keeping the native scalar values."""
        return dict(self._flatten_items(data, ""))

    def _flatten_items(self, value: Any, prefix: str) -> List[Tuple[str, Any]]:
        if isinstance(value, dict):
            items = []
            for key, child in value.items():
                child_key = f"{prefix}{self.separator}{key}" if prefix else str(key)
                items.extend(self._flatten_items(child, child_key))
            return items
        if isinstance(value, list):
            items = []
            for index, child in enumerate(value):
                child_key = f"{prefix}{self.separator}{index}" if prefix else str(index)
                items.extend(self._flatten_items(child, child_key))
            return items
        return [(prefix, value)]

    def flatten_to_map(self, json_string: str) -> Dict[str, str]:
        """
        Parse and flatten a JSON document into a map of string values.

        Strings are kept as they are; numbers and booleans keep their JSON
        spelling (``12.5``, ``true``) and null becomes an empty string.

        Raises:
            ParseError: If the document is not valid JSON or not an object
        """
        flat = self.flatten(self.parse_object(json_string))
        result = {key: self.to_text(value) for key, value in flat.items()}
        logger.debug(f"Flattened JSON into {len(result)} values")
        return result

    @staticmethod
    def to_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return json.dumps(value)
