"""
Localized user-facing texts.

Texts are looked up by key (e.g. ``tasmota.relay.multi``) in
``resources/messages_<locale>.yaml``; keys missing in a locale fall back to
English and unknown keys are returned unchanged.
"""
from pathlib import Path
from typing import Dict, Optional

import yaml

from .logging import get_logger

logger = get_logger(__name__)

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"
DEFAULT_LOCALE = "en"


class MessageBundle:
    """Message texts for one locale."""

    def __init__(self, locale: str = DEFAULT_LOCALE, resources_dir: Optional[Path] = None):
        self.locale = locale
        self.resources_dir = Path(resources_dir) if resources_dir else RESOURCES_DIR
        self.messages: Dict[str, str] = {}
        if locale != DEFAULT_LOCALE:
            self.messages.update(self._load(DEFAULT_LOCALE))
        self.messages.update(self._load(locale))

    def _load(self, locale: str) -> Dict[str, str]:
        path = self.resources_dir / f"messages_{locale}.yaml"
        if not path.exists():
            logger.warning(f"No messages for locale '{locale}' in {self.resources_dir}")
            return {}
        with open(path, "r", encoding="utf-8") as f:
            return {str(key): str(value) for key, value in (yaml.safe_load(f) or {}).items()}

    def get(self, key: str, *args) -> str:
        """Return the text for a key, formatted with positional arguments."""
        text = self.messages.get(key, key)
        return text.format(*args) if args else text
