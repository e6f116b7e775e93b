#!/usr/bin/env python
"""Tests for the command line interface."""

import os
import sys

import pytest
from typer.testing import CliRunner

# Add the source directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from tasmota_manager.exceptions import TransportFailure
from tasmota_manager.interfaces.cli import main as cli_main
from tasmota_manager.models.provider_data import ProviderDataStore

from tasmota_http_connection import TasmotaHttpConnection

runner = CliRunner()


@pytest.fixture
def connection(monkeypatch):
    """Route every CLI request to a recorded device."""
    fake = TasmotaHttpConnection()
    monkeypatch.setattr(cli_main, "connection_factory", lambda settings: fake)
    return fake


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("TASMOTA_DATA_DIR", raising=False)
    return str(tmp_path / "providers")


def invoke(data_dir, *args):
    return runner.invoke(cli_main.app, ["--no-log-file", "--data-dir", data_dir, *args])


def test_connection_test(connection, data_dir):
    result = invoke(data_dir, "test", "--host", "192.168.1.50")
    assert result.exit_code == 0, result.output
    assert "Plug1" in result.output
    assert connection.requested[-1] == "http://192.168.1.50/cm?cmnd=Status0"


def test_connection_test_failure(connection, data_dir):
    connection.fail_with = TransportFailure("Connection refused")
    result = invoke(data_dir, "test", "--host", "192.168.1.50")
    assert result.exit_code == 1
    assert "Connection refused" in result.output


def test_discover_stores_provider(connection, data_dir):
    result = invoke(data_dir, "discover", "--name", "plug", "--host", "192.168.1.50")
    assert result.exit_code == 0, result.output
    assert "Relay 2" in result.output
    assert "Relay 3" in result.output

    stored = ProviderDataStore(data_dir).load("plug")
    assert stored.is_initialized
    assert len(stored.available_commands) == 2


def test_discover_twice(connection, data_dir):
    invoke(data_dir, "discover", "--name", "plug", "--host", "192.168.1.50")
    result = invoke(data_dir, "discover", "--name", "plug")
    assert result.exit_code == 0, result.output
    assert "already discovered" in result.output
    assert len(connection.requested) == 1


def test_commands_requires_discovery(connection, data_dir):
    result = invoke(data_dir, "commands", "--name", "unknown")
    assert result.exit_code == 1
    assert "not been discovered" in result.output


def test_commands_lists_payloads(connection, data_dir):
    invoke(data_dir, "discover", "--name", "plug", "--host", "192.168.1.50")
    result = invoke(data_dir, "commands", "--name", "plug")
    assert result.exit_code == 0, result.output
    assert "cmnd=Power2" in result.output
    assert "cmnd=Power3" in result.output


def test_send(connection, data_dir):
    invoke(data_dir, "discover", "--name", "plug", "--host", "192.168.1.50")
    result = invoke(data_dir, "send", "--name", "plug", "--channel", "3", "--action", "off")
    assert result.exit_code == 0, result.output
    assert connection.requested[-1] == "http://192.168.1.50/cm?cmnd=Power3%20off"


def test_send_unknown_action(connection, data_dir):
    invoke(data_dir, "discover", "--name", "plug", "--host", "192.168.1.50")
    result = invoke(data_dir, "send", "--name", "plug", "--channel", "2", "--action", "blink")
    assert result.exit_code == 1


def test_poll(connection, data_dir):
    result = invoke(data_dir, "poll", "--name", "plug", "--host", "192.168.1.50")
    assert result.exit_code == 0, result.output
    assert "StatusSTS_POWER1" in result.output
    assert ProviderDataStore(data_dir).load("plug").is_initialized


def test_reset(connection, data_dir):
    invoke(data_dir, "discover", "--name", "plug", "--host", "192.168.1.50")
    result = invoke(data_dir, "reset", "--name", "plug")
    assert result.exit_code == 0, result.output
    assert ProviderDataStore(data_dir).load("plug") is None

    result = invoke(data_dir, "reset", "--name", "plug")
    assert "No stored data" in result.output


def test_discover_from_config_file(connection, data_dir, tmp_path):
    config = tmp_path / "provider.yaml"
    config.write_text("name: kitchen\nsettings:\n  provider_host: 192.168.1.77\n", encoding="utf-8")
    result = invoke(data_dir, "discover", "--config", str(config))
    assert result.exit_code == 0, result.output
    assert connection.requested[-1] == "http://192.168.1.77/cm?cmnd=Status0"
    assert ProviderDataStore(data_dir).load("kitchen") is not None


@pytest.mark.parametrize("content", ["name: plug\nsettings: [unclosed\n", "name: plug\nsettings: 5\n"])
@pytest.mark.parametrize("command", [
    ["commands", "--name", "plug"],
    ["send", "--name", "plug", "--channel", "2", "--action", "on"],
    ["poll", "--name", "plug"],
])
def test_corrupt_stored_data_is_reported(connection, data_dir, content, command):
    os.makedirs(data_dir, exist_ok=True)
    with open(os.path.join(data_dir, "plug.yaml"), "w", encoding="utf-8") as f:
        f.write(content)

    result = invoke(data_dir, *command)
    assert result.exit_code == 1
    assert "Error" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert connection.requested == []
