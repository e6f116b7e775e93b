"""
Loading of provider configuration files.

Example ``config/provider.yaml``::

    name: plug
    settings:
      provider_host: 192.168.1.50
      optional_user: admin
      optional_password: secret
    activity:
      interval_seconds: 60
"""
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..models.provider_data import ProviderData
from ..models.settings import Activity, ConnectionSettings
from .logging import get_logger

logger = get_logger(__name__)


def load_config_file(config_file: str) -> Dict[str, Any]:
    """
    Read a YAML configuration file.

    Raises:
        ValueError: If the file does not contain a mapping
    """
    with open(config_file, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration file {config_file} must contain a mapping")
    logger.debug(f"Loaded configuration from {config_file}")
    return config


def build_settings(
    host: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
    base: Optional[Dict[str, Any]] = None
) -> ConnectionSettings:
    """
    Build connection settings from a config section overridden by explicit values.

    Raises:
        ValueError: If the resulting settings are invalid
    """
    values = dict(base or {})
    if host:
        values["provider_host"] = host
    if user:
        values["optional_user"] = user
    if password:
        values["optional_password"] = password
    try:
        return ConnectionSettings(**values)
    except ValidationError as e:
        raise ValueError(f"Invalid connection settings: {e}") from e


def provider_data_from_config(config: Dict[str, Any], name: Optional[str] = None) -> ProviderData:
    """Create fresh, undiscovered provider data from a configuration mapping"""
    return ProviderData(
        name=name or config.get("name") or "tasmota",
        settings=build_settings(base=config.get("settings")),
        activity=Activity.from_dict(config.get("activity") or {}),
    )
