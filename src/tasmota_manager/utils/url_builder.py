"""
Placeholder substitution for device URL templates.

Templates name configuration values in braces, e.g.
``http://{provider_host}/cm?cmnd=Status0``. The same substitution is used
for telemetry polling and for command dispatch, so one settings object
configures every outbound request.
"""
import re
from typing import Mapping

from yarl import URL

from ..exceptions import MalformedRequest
from .logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z0-9_.-]+)\}")


def replace_named_placeholders(template: str, values: Mapping[str, str]) -> str:
    """
    Replace every ``{key}`` in the template with ``values[key]``.

    Raises:
        MalformedRequest: If a placeholder has no value in the mapping
    """
    missing = [name for name in PLACEHOLDER_PATTERN.findall(template) if name not in values]
    if missing:
        raise MalformedRequest(
            f"No value for placeholder(s) {', '.join(sorted(set(missing)))} in '{template}'"
        )
    return PLACEHOLDER_PATTERN.sub(lambda match: str(values[match.group(1)]), template)


def build_url(template: str, values: Mapping[str, str]) -> URL:
    """
    Substitute configuration values into a URL template and validate the result.

    Args:
        template: URL template with ``{key}`` placeholders
        values: Configuration values keyed by placeholder name

    Returns:
        The absolute URL. Already percent-encoded fragments such as ``%20``
        are kept as they are.

    Raises:
        MalformedRequest: If a placeholder is unresolved or the result is not
            a valid absolute http(s) URL
    """
    url_string = replace_named_placeholders(template, values)

    if any(char.isspace() for char in url_string):
        raise MalformedRequest(f"URL contains whitespace: '{url_string}'")

    try:
        parsed = URL(url_string)
        port = parsed.port
    except (ValueError, TypeError) as e:
        raise MalformedRequest(f"Invalid URL '{url_string}': {e}") from e

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise MalformedRequest(f"Not an absolute http URL: '{url_string}'")
    if port is not None and not 0 < port < 65536:
        raise MalformedRequest(f"Invalid port {port} in '{url_string}'")

    return URL(url_string, encoded=True)
