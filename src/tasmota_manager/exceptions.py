"""
Error types raised by the Tasmota manager.
"""


class TasmotaManagerError(RuntimeError):
    """Base class for all errors raised by this package."""


class MalformedRequest(TasmotaManagerError):
    """A URL template could not be resolved into a valid absolute URL."""


class ParseError(TasmotaManagerError):
    """A device response was not a JSON object."""


class TransportFailure(TasmotaManagerError):
    """Connecting to the device failed, timed out or returned an HTTP error."""


class Unconfigured(TasmotaManagerError):
    """The provider has not completed its first run yet."""


class PersistenceFailure(TasmotaManagerError):
    """Discovered provider data could not be stored."""
