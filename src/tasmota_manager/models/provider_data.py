"""
Provider data and its YAML persistence.
"""
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..utils.logging import get_logger
from .command import Command
from .field import CommandProviderProperty, Field
from .settings import Activity, ConnectionSettings

logger = get_logger(__name__)

DEFAULT_DATA_DIR = "data/providers"


@dataclass
class ProviderData:
    """
    Everything known about one configured device.

    ``provider_properties`` stays ``None`` until the first run discovered the
    device's fields. Both it and ``available_commands`` are only ever replaced
    as a whole.
    """
    name: str
    plugin_name: str = "Tasmota"
    settings: ConnectionSettings = field(default_factory=ConnectionSettings)
    activity: Activity = field(default_factory=Activity)
    provider_properties: Optional[List[CommandProviderProperty]] = None
    available_commands: Tuple[Command, ...] = ()
    properties_changed: bool = False

    @property
    def is_initialized(self) -> bool:
        return self.provider_properties is not None

    @property
    def fields(self) -> List[Field]:
        """All discovered fields of all provider properties."""
        result = []
        for provider_property in self.provider_properties or []:
            result.extend(provider_property.property_fields)
        return result

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "plugin_name": self.plugin_name,
            "settings": self.settings.model_dump(exclude_none=True),
            "activity": self.activity.to_dict(),
        }
        if self.provider_properties is not None:
            result["provider_properties"] = [p.to_dict() for p in self.provider_properties]
        if self.available_commands:
            result["available_commands"] = [c.to_dict() for c in self.available_commands]
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderData":
        properties = data.get("provider_properties")
        return cls(
            name=data["name"],
            plugin_name=data.get("plugin_name", "Tasmota"),
            settings=ConnectionSettings(**(data.get("settings") or {})),
            activity=Activity.from_dict(data.get("activity") or {}),
            provider_properties=(
                [CommandProviderProperty.from_dict(p) for p in properties]
                if properties is not None else None
            ),
            available_commands=tuple(Command.from_dict(c) for c in data.get("available_commands", [])),
        )


class ProviderDataStore:
    """
    Stores provider data in one YAML file per provider.

    The directory is taken from the ``TASMOTA_DATA_DIR`` environment
    variable, the constructor argument or ``data/providers``, in that order.
    """

    def __init__(self, data_dir: Optional[str] = None):
        self.data_dir = os.environ.get("TASMOTA_DATA_DIR") or data_dir or DEFAULT_DATA_DIR
        logger.debug(f"Initializing ProviderDataStore with directory: {self.data_dir}")

    def _sanitize_filename(self, name: str) -> str:
        sanitized = re.sub(r'[\\/*?:"<>|]', '_', name)
        return sanitized.replace(' ', '_')

    def get_file_path(self, name: str) -> str:
        return os.path.join(self.data_dir, f"{self._sanitize_filename(name)}.yaml")

    def save(self, provider_data: ProviderData) -> bool:
        """
        Save provider data to its YAML file.

        Returns:
            bool: True if the save was successful, False otherwise
        """
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            file_path = self.get_file_path(provider_data.name)
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(provider_data.to_dict(), f, sort_keys=False, default_flow_style=False)
            provider_data.properties_changed = False
            logger.debug(f"Saved provider '{provider_data.name}' to {file_path}")
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save provider '{provider_data.name}': {str(e)}")
            return False

    def load(self, name: str) -> Optional[ProviderData]:
        """
        Load provider data by name, or None if nothing is stored for it.

        Raises:
            ValueError: If the stored file does not describe provider data
            yaml.YAMLError: If the stored file is not valid YAML
        """
        file_path = self.get_file_path(name)
        if not os.path.exists(file_path):
            logger.debug(f"No stored provider data at {file_path}")
            return None

        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"Invalid provider data in {file_path}: not a dictionary")
            return None
        data.setdefault("name", name)
        try:
            provider_data = ProviderData.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid provider data in {file_path}: {e}") from e
        logger.debug(f"Loaded provider '{name}' from {file_path}")
        return provider_data

    def delete(self, name: str) -> bool:
        """
        Delete the stored data of a provider so it is discovered again.

        Returns:
            bool: True if a file was deleted, False if none existed
        """
        file_path = self.get_file_path(name)
        if os.path.exists(file_path):
            os.remove(file_path)
            logger.info(f"Deleted provider data {file_path}")
            return True
        logger.warning(f"Provider data file {file_path} does not exist")
        return False

    def list_names(self) -> List[str]:
        if not os.path.isdir(self.data_dir):
            return []
        return sorted(
            os.path.splitext(filename)[0]
            for filename in os.listdir(self.data_dir)
            if filename.endswith('.yaml')
        )
