"""
Models for the commands a device accepts.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class SubAction:
    """
    One selectable variant of a command.

    Attributes:
        encoded_value: Literal protocol fragment sent to the device,
            e.g. ``cmnd=Power2%20on``
        label_key: Message key of the label shown for this variant
    """
    encoded_value: str
    label_key: str

    def to_dict(self) -> Dict[str, str]:
        return {"encoded_value": self.encoded_value, "label_key": self.label_key}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubAction":
        return cls(encoded_value=data["encoded_value"], label_key=data["label_key"])


@dataclass(frozen=True)
class Command:
    """
    A user-invocable control action of a device.

    Commands compare equal when all attributes are equal, so the same
    channel discovered twice collapses into one entry of a set.
    """
    group_id: str
    title_key: str
    options: Tuple[SubAction, ...]
    sort_rank: int = 0

    @property
    def sort_key(self) -> Tuple[int, str, Tuple[str, ...]]:
        return (self.sort_rank, self.title_key, tuple(o.encoded_value for o in self.options))

    def get_option(self, encoded_value: str) -> Optional[SubAction]:
        for option in self.options:
            if option.encoded_value == encoded_value:
                return option
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "title_key": self.title_key,
            "options": [o.to_dict() for o in self.options],
            "sort_rank": self.sort_rank,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Command":
        return cls(
            group_id=data["group_id"],
            title_key=data["title_key"],
            options=tuple(SubAction.from_dict(o) for o in data.get("options", [])),
            sort_rank=int(data.get("sort_rank", 0)),
        )


@dataclass(frozen=True)
class SendCommand:
    """A command together with the sub-action selected for dispatch."""
    command: Command
    selected: str

    def __post_init__(self):
        if self.command.get_option(self.selected) is None:
            raise ValueError(
                f"'{self.selected}' is not an option of command '{self.command.title_key}'"
            )

    @property
    def send(self) -> str:
        return self.selected
