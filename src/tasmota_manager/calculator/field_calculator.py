"""
Writes typed output variables from a flattened telemetry map.
"""
from typing import Any, Iterable, Mapping, MutableMapping

from ..models.field import Field, FieldKind
from ..utils.logging import get_logger

logger = get_logger(__name__)


class FieldCalculator:
    """Applies the discovered fields to a flat map of device values."""

    def calculate(self, values: Mapping[str, str], fields: Iterable[Field],
                  variables: MutableMapping[str, Any]) -> int:
        """
        Convert the value of every field found in ``values`` and store it in ``variables``.

        Args:
            values: Flattened device response
            fields: Fields discovered on the first run
            variables: Output variables, keyed by field name

        Returns:
            Number of variables written
        """
        written = 0
        for field in fields:
            if field.source_key not in values:
                logger.debug(f"No value for field '{field.source_key}' in this response")
                continue
            variables[field.name] = self.convert(values[field.source_key], field)
            written += 1
        logger.debug(f"Calculated {written} variables")
        return written

    def convert(self, value: str, field: Field) -> Any:
        """Convert a flattened value to the inferred type of its field"""
        if field.inferred_kind == FieldKind.BOOLEAN:
            if value.lower() == 'true':
                return True
            if value.lower() == 'false':
                return False
        elif field.inferred_kind == FieldKind.NUMBER:
            try:
                number = float(value)
                if number.is_integer() and '.' not in value and 'e' not in value.lower():
                    return int(value)
                return number
            except ValueError:
                pass
        else:
            return value

        logger.warning(f"Value '{value}' of field '{field.name}' is not a {field.inferred_kind.value}")
        return value

