#!/usr/bin/env python
"""Tests for the relay command catalog."""

import unittest
import os

# Add the source directory to the Python path
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from tasmota_manager.discovery import command_catalog
from tasmota_manager.discovery.capability_inference import (
    ControlActionDescriptor, TITLE_MULTI_RELAY, TITLE_SINGLE_RELAY
)
from tasmota_manager.discovery.command_catalog import CommandCatalog
from tasmota_manager.models.command import Command, SendCommand, SubAction

SINGLE = ControlActionDescriptor("Power", None, TITLE_SINGLE_RELAY)


def multi(index):
    return ControlActionDescriptor("Power", index, TITLE_MULTI_RELAY)


class TestSynthesize(unittest.TestCase):
    """Tests for building commands from relay channels."""

    def test_single_relay_command(self):
        commands = command_catalog.synthesize([SINGLE])
        self.assertEqual(len(commands), 1)
        command = commands[0]
        self.assertEqual(command.group_id, "Tasmota")
        self.assertEqual(command.title_key, "tasmota.relay.single")
        self.assertEqual(command.sort_rank, 0)
        self.assertEqual(
            [o.encoded_value for o in command.options],
            ["cmnd=Power%20on", "cmnd=Power%20off", "cmnd=Power%20toggle"]
        )
        self.assertEqual(
            [o.label_key for o in command.options],
            ["tasmota.option.on", "tasmota.option.off", "tasmota.option.toggle"]
        )

    def test_channel_index_is_one_based_on_the_wire(self):
        commands = command_catalog.synthesize([multi(3), multi(1), multi(2)])
        self.assertEqual([c.sort_rank for c in commands], [2, 3, 4])
        self.assertEqual(
            [c.options[0].encoded_value for c in commands],
            ["cmnd=Power2%20on", "cmnd=Power3%20on", "cmnd=Power4%20on"]
        )
        self.assertEqual(commands[1].options[2].encoded_value, "cmnd=Power3%20toggle")

    def test_duplicates_collapse(self):
        self.assertEqual(len(command_catalog.synthesize([multi(1), multi(1), SINGLE, SINGLE])), 2)

    def test_single_relay_sorts_first(self):
        commands = command_catalog.synthesize([multi(1), SINGLE])
        self.assertEqual([c.title_key for c in commands], [TITLE_SINGLE_RELAY, TITLE_MULTI_RELAY])

    def test_synthesis_is_deterministic(self):
        descriptors = {multi(1), multi(2), multi(5)}
        self.assertEqual(command_catalog.synthesize(descriptors), command_catalog.synthesize(descriptors))

    def test_no_channels_no_commands(self):
        self.assertEqual(command_catalog.synthesize([]), [])

    def test_commands_round_trip_through_dict(self):
        command = command_catalog.command_for(multi(1))
        self.assertEqual(Command.from_dict(command.to_dict()), command)


class TestCommandCatalog(unittest.TestCase):
    """Tests for the command cache of a provider."""

    def test_replace_swaps_whole_catalog(self):
        catalog = CommandCatalog()
        first = catalog.replace(command_catalog.synthesize([multi(1)]))
        second = catalog.replace(command_catalog.synthesize([multi(1), multi(2)]))
        self.assertEqual(len(first), 1)
        self.assertEqual(len(second), 2)
        self.assertIs(catalog.commands, second)
        self.assertEqual(len(catalog), 2)

    def test_find_by_rank(self):
        catalog = CommandCatalog(command_catalog.synthesize([multi(1), multi(2)]))
        self.assertEqual(catalog.find(3).options[0].encoded_value, "cmnd=Power3%20on")
        with self.assertRaises(ValueError):
            catalog.find(1)


class TestSendCommand(unittest.TestCase):
    """Tests for selecting a sub-action."""

    def setUp(self):
        self.command = command_catalog.command_for(multi(1))

    def test_send_is_selected_value(self):
        self.assertEqual(SendCommand(self.command, "cmnd=Power2%20off").send, "cmnd=Power2%20off")

    def test_unknown_option_is_rejected(self):
        with self.assertRaises(ValueError):
            SendCommand(self.command, "cmnd=Power9%20on")

    def test_get_option(self):
        self.assertEqual(
            self.command.get_option("cmnd=Power2%20toggle"),
            SubAction("cmnd=Power2%20toggle", "tasmota.option.toggle")
        )
        self.assertIsNone(self.command.get_option("cmnd=Power2"))


if __name__ == '__main__':
    unittest.main()
