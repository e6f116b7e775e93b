"""
Provider for Tasmota devices.

On the first contact the provider reads ``Status0`` once, remembers every
field the device reports and derives the relay commands from it. Every later
cycle only reads ``Status0`` again and converts it into typed variables.
"""
from typing import Any, Dict, List, MutableMapping, Optional, Tuple

from yarl import URL

from ..calculator.field_calculator import FieldCalculator
from ..connection.http_connection import ConnectionFactory, HttpConnection, create_http_connection
from ..discovery import capability_inference, command_catalog
from ..discovery.command_catalog import CommandCatalog
from ..discovery.field_discovery import FieldDiscovery
from ..exceptions import Unconfigured
from ..models.command import Command, SendCommand
from ..models.field import CommandProviderProperty
from ..models.provider_data import ProviderData
from ..models.settings import Activity, ConnectionSettings
from ..utils.json_tools import JsonTools
from ..utils.logging import get_logger
from ..utils.messages import MessageBundle
from ..utils.url_builder import build_url

logger = get_logger(__name__)

PLUGIN_NAME = "Tasmota"
PLUGIN_VERSION = "1.0.1"

BASE_URL = "http://{provider_host}"
DEFAULT_COMMAND = "/cm?cmnd=Status0"
PROPERTY_NAME = "cmd"

DEVICE_NAME_KEY = "Status_DeviceName"
TOPIC_KEY = "Status_Topic"


class TasmotaProvider:
    """
    Reads values from and sends relay commands to one Tasmota device.

    Each instance owns its provider data and command catalog; independent
    devices need independent instances.
    """

    def __init__(
        self,
        provider_data: ProviderData,
        connection_factory: ConnectionFactory = create_http_connection,
        locale: str = "en"
    ):
        """
        Initialize the provider.

        Args:
            provider_data: Settings and, after the first run, discovered fields and commands
            connection_factory: Creates the HTTP connection for a settings object
            locale: Locale of the texts returned to the user
        """
        self.provider_data = provider_data
        self.connection_factory = connection_factory
        self.messages = MessageBundle(locale)
        self.json_tools = JsonTools()
        self.field_discovery = FieldDiscovery(self.json_tools)
        self.calculator = FieldCalculator()
        self.command_catalog = CommandCatalog(provider_data.available_commands)
        logger.debug(f"Instantiated {self.__class__.__name__} for '{provider_data.name}'")

    @staticmethod
    def get_default_provider_setting() -> ConnectionSettings:
        return ConnectionSettings(provider_host="localhost", provider_port=80)

    @staticmethod
    def get_default_activity() -> Activity:
        return Activity()

    @property
    def is_initialized(self) -> bool:
        return self.provider_data.is_initialized

    def get_available_commands(self) -> Tuple[Command, ...]:
        return self.command_catalog.commands

    def get_url(self, setting: ConnectionSettings, url_pattern: str) -> URL:
        return build_url(url_pattern, setting.get_configuration_values())

    def get_connection(self) -> HttpConnection:
        return self.connection_factory(self.provider_data.settings)

    async def test_provider_connection(self, test_setting: ConnectionSettings) -> str:
        """
        Check the given settings against the device.

        Returns:
            A confirmation text naming the device and its MQTT topic

        Raises:
            MalformedRequest: If the settings do not produce a valid URL
            TransportFailure: If the device cannot be reached
            ParseError: If the device does not answer with a JSON object
        """
        test_url = self.get_url(test_setting, BASE_URL + DEFAULT_COMMAND)
        logger.debug(f"Test url {test_url}")
        test_connection = self.connection_factory(test_setting)
        await test_connection.test(test_url, HttpConnection.CONTENT_TYPE_JSON)
        json_string = await test_connection.get_as_string(test_url)
        logger.debug(f"Result is {json_string}")
        result = self.json_tools.flatten_to_map(json_string)
        name = result.get(DEVICE_NAME_KEY, "")
        topic = result.get(TOPIC_KEY, "")
        message = self.messages.get("tasmota.connection.successful", name, topic)
        logger.debug(f"Returns {message}")
        return message

    async def do_on_first_run(self) -> bool:
        """
        Discover fields and commands if that has not happened yet.

        Nothing is stored unless every step succeeds, so a failed first run
        is simply repeated on the next cycle.

        Returns:
            True if the discovery ran, False if the provider was already initialized
        """
        if self.provider_data.provider_properties is not None:
            return False

        url_pattern = BASE_URL + DEFAULT_COMMAND
        url = self.get_url(self.provider_data.settings, url_pattern)
        logger.info(f"First run for '{self.provider_data.name}', reading {url}")
        json_string = await self.get_connection().get_as_string(url)

        fields = self.field_discovery.discover(json_string, PROPERTY_NAME)
        descriptors = capability_inference.infer(fields)
        commands = command_catalog.synthesize(descriptors)

        provider_property = CommandProviderProperty(
            name=PROPERTY_NAME,
            command=url_pattern,
            property_fields=tuple(sorted(fields, key=lambda f: f.name))
        )
        self.provider_data.provider_properties = [provider_property]
        self.provider_data.available_commands = self.command_catalog.replace(commands)
        self.provider_data.properties_changed = True
        logger.info(
            f"Discovered {len(fields)} fields and {len(commands)} commands for '{self.provider_data.name}'"
        )
        return True

    async def do_activity_work(self, variables: MutableMapping[str, Any]) -> bool:
        """
        Read all provider properties and write their values into ``variables``.

        ``variables`` is only updated once every property was read.

        Raises:
            Unconfigured: If the first run has not completed
            TransportFailure: If the device cannot be read
            ParseError: If the device response is not a JSON object
        """
        if not self.is_initialized:
            raise Unconfigured(f"Provider '{self.provider_data.name}' has not been discovered yet")

        http_connection = self.get_connection()
        collected: Dict[str, Any] = {}
        for provider_property in self.provider_data.provider_properties:
            await self.handle_command_property(http_connection, provider_property, collected)
        variables.update(collected)
        return True

    async def handle_command_property(
        self,
        http_connection: HttpConnection,
        command_provider_property: CommandProviderProperty,
        variables: MutableMapping[str, Any]
    ) -> None:
        url = self.get_url(self.provider_data.settings, command_provider_property.command)
        logger.debug(f"Read from url {url}...")
        values = self.json_tools.flatten_to_map(await http_connection.get_as_string(url))
        self.calculator.calculate(values, command_provider_property.property_fields, variables)

    async def send_command(self, send_command: SendCommand) -> None:
        """
        Send a selected sub-action to the device.

        The device's answer is not inspected; receiving it is success.

        Raises:
            MalformedRequest: If no valid URL can be built
            TransportFailure: If the request cannot be sent
        """
        url_pattern = f"{BASE_URL}/cm?{send_command.send}"
        url = self.get_url(self.provider_data.settings, url_pattern)
        logger.debug(f"Send action url {url}")
        response = await self.get_connection().get(url)
        logger.debug(f"Device answered HTTP {response.status}")

    def command_title(self, command: Command) -> str:
        """Localized title, e.g. ``Relay 2``"""
        return self.messages.get(command.title_key, command.sort_rank)

    def option_label(self, label_key: str) -> str:
        return self.messages.get(label_key)

    def describe_commands(self) -> List[Dict[str, Any]]:
        """Commands with their localized texts, for display"""
        return [
            {
                "rank": command.sort_rank,
                "title": self.command_title(command),
                "options": [
                    {"value": option.encoded_value, "label": self.option_label(option.label_key)}
                    for option in command.options
                ],
            }
            for command in self.get_available_commands()
        ]

    def select(self, channel: int, action: str) -> SendCommand:
        """
        Pick the sub-action of a channel by its plain name (on, off or toggle).

        Raises:
            ValueError: If the channel or action does not exist
        """
        command = self.command_catalog.find(channel)
        for option in command.options:
            if option.encoded_value.endswith(command_catalog.ENCODED_SPACE + action.lower()):
                return SendCommand(command, option.encoded_value)
        raise ValueError(f"Unknown action '{action}' for channel {channel}")
