"""
Synthesis of the on/off/toggle command catalog from relay channels.
"""
from typing import Iterable, List, Tuple

from ..models.command import Command, SubAction
from ..utils.logging import get_logger
from .capability_inference import ControlActionDescriptor

logger = get_logger(__name__)

COMMAND_GROUP = "Tasmota"
COMMAND_PREFIX = "cmnd="
ENCODED_SPACE = "%20"

ON = "on"
OFF = "off"
TOGGLE = "toggle"

OPTION_LABELS = (
    (ON, "tasmota.option.on"),
    (OFF, "tasmota.option.off"),
    (TOGGLE, "tasmota.option.toggle"),
)


def payload_prefix(descriptor: ControlActionDescriptor) -> str:
    """
    Command prefix for a channel, e.g. ``cmnd=Power%20`` or ``cmnd=Power2%20``.

    Channel indices are zero based in the telemetry and one based on the wire.
    """
    prefix = f"{COMMAND_PREFIX}{descriptor.base_keyword}"
    if descriptor.channel_index is not None:
        prefix += str(descriptor.channel_index + 1)
    return prefix + ENCODED_SPACE


def sort_rank(descriptor: ControlActionDescriptor) -> int:
    if descriptor.channel_index is None:
        return 0
    return descriptor.channel_index + 1


def command_for(descriptor: ControlActionDescriptor) -> Command:
    prefix = payload_prefix(descriptor)
    options = tuple(SubAction(prefix + action, label_key) for action, label_key in OPTION_LABELS)
    return Command(
        group_id=COMMAND_GROUP,
        title_key=descriptor.title_key,
        options=options,
        sort_rank=sort_rank(descriptor),
    )


def synthesize(descriptors: Iterable[ControlActionDescriptor]) -> List[Command]:
    """
    Build the command catalog for a set of relay channels.

    Duplicate channels collapse into one command; the result is sorted by
    rank, with the unindexed single relay first.
    """
    commands = {command_for(descriptor) for descriptor in set(descriptors)}
    result = sorted(commands, key=lambda command: command.sort_key)
    logger.debug(f"Synthesized {len(result)} command(s)")
    return result


class CommandCatalog:
    """
    Holds the commands of one provider.

    The catalog is replaced as a whole and never mutated in place, so readers
    always see either the old or the new complete tuple.
    """

    def __init__(self, commands: Iterable[Command] = ()):
        self._commands: Tuple[Command, ...] = tuple(commands)

    @property
    def commands(self) -> Tuple[Command, ...]:
        return self._commands

    def replace(self, commands: Iterable[Command]) -> Tuple[Command, ...]:
        self._commands = tuple(commands)
        return self._commands

    def find(self, sort_rank: int) -> Command:
        """
        Get the command of a channel by its rank.

        Raises:
            ValueError: If the catalog has no command with this rank
        """
        for command in self._commands:
            if command.sort_rank == sort_rank:
                return command
        raise ValueError(f"No command for channel {sort_rank}")

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self):
        return iter(self._commands)
