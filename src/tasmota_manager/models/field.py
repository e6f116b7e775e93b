"""
Models for discovered telemetry fields.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class FieldKind(str, Enum):
    """Scalar type inferred for a field"""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class Field:
    """
    One named, typed value of a telemetry document.

    Fields are identified by ``(owner_logical_name, name)``.
    """
    name: str
    source_key: str
    inferred_kind: FieldKind
    owner_logical_name: str

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.owner_logical_name, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "source_key": self.source_key,
            "inferred_kind": self.inferred_kind.value,
            "owner_logical_name": self.owner_logical_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Field":
        return cls(
            name=data["name"],
            source_key=data.get("source_key", data["name"]),
            inferred_kind=FieldKind(data.get("inferred_kind", FieldKind.STRING.value)),
            owner_logical_name=data["owner_logical_name"],
        )


@dataclass(frozen=True)
class CommandProviderProperty:
    """
    A polled endpoint of the device together with the fields read from it.

    Attributes:
        name: Logical name of the endpoint, also the owner of its fields
        command: URL template that is polled
        property_fields: Fields discovered on first run, sorted by name
    """
    name: str
    command: str
    property_fields: Tuple[Field, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "command": self.command,
            "property_fields": [f.to_dict() for f in self.property_fields],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommandProviderProperty":
        return cls(
            name=data["name"],
            command=data["command"],
            property_fields=tuple(Field.from_dict(f) for f in data.get("property_fields", [])),
        )
