"""
Inference of controllable relay channels from discovered field names.

Tasmota reports the state of every relay under ``StatusSTS``: ``POWER`` for
a single relay device, ``POWER1`` .. ``POWERn`` for devices with several.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Set

from ..models.field import Field
from ..utils.logging import get_logger

logger = get_logger(__name__)

POWER_STATE_PATTERN = re.compile(r"StatusSTS_POWER(\d*)", re.IGNORECASE)

BASE_KEYWORD = "Power"
TITLE_SINGLE_RELAY = "tasmota.relay.single"
TITLE_MULTI_RELAY = "tasmota.relay.multi"


@dataclass(frozen=True)
class ControlActionDescriptor:
    """A controllable channel found in the telemetry."""
    base_keyword: str
    channel_index: Optional[int]
    title_key: str


def parse_channel_index(suffix: str) -> Optional[int]:
    """Channel index from a key suffix; empty or unparseable suffixes mean no index."""
    try:
        return int(suffix)
    except ValueError:
        return None


def descriptor_for_key(source_key: str) -> Optional[ControlActionDescriptor]:
    """
    Match a single flattened key against the power state pattern.

    Returns:
        The descriptor of the channel, or None if the key is ordinary telemetry
    """
    match = POWER_STATE_PATTERN.search(source_key)
    if not match:
        return None

    channel_index = parse_channel_index(match.group(1))
    if channel_index is None:
        return ControlActionDescriptor(BASE_KEYWORD, None, TITLE_SINGLE_RELAY)
    return ControlActionDescriptor(BASE_KEYWORD, channel_index, TITLE_MULTI_RELAY)


def infer(fields: Iterable[Field]) -> Set[ControlActionDescriptor]:
    """
    Find all controllable channels among the given fields.

    An empty result is valid: the device has no relays.
    """
    descriptors = set()
    for field in fields:
        descriptor = descriptor_for_key(field.source_key)
        if descriptor is not None:
            logger.debug(f"Field '{field.source_key}' is a relay channel ({descriptor.channel_index})")
            descriptors.add(descriptor)
    logger.debug(f"Inferred {len(descriptors)} relay channel(s)")
    return descriptors
