#!/usr/bin/env python
"""Tests for URL building from templates."""

import os
import sys

import pytest

# Add the source directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from tasmota_manager.exceptions import MalformedRequest
from tasmota_manager.models.settings import ConnectionSettings
from tasmota_manager.utils.url_builder import build_url, replace_named_placeholders

STATUS_TEMPLATE = "http://{provider_host}/cm?cmnd=Status0"


def test_substitutes_host():
    url = build_url(STATUS_TEMPLATE, {"provider_host": "192.168.1.50"})
    assert str(url) == "http://192.168.1.50/cm?cmnd=Status0"
    assert url.host == "192.168.1.50"


def test_keeps_encoded_command_payload():
    url = build_url("http://{provider_host}/cm?cmnd=Power2%20toggle", {"provider_host": "plug.local"})
    assert str(url) == "http://plug.local/cm?cmnd=Power2%20toggle"


def test_host_with_port():
    url = build_url(STATUS_TEMPLATE, {"provider_host": "192.168.1.50:8080"})
    assert url.port == 8080


def test_same_input_gives_same_url():
    values = {"provider_host": "10.0.0.7"}
    assert str(build_url(STATUS_TEMPLATE, values)) == str(build_url(STATUS_TEMPLATE, values))


def test_missing_placeholder_fails():
    with pytest.raises(MalformedRequest, match="optional_user"):
        build_url("http://{optional_user}@{provider_host}/", {"provider_host": "plug"})


def test_unset_optional_settings_are_not_placeholders():
    values = ConnectionSettings(provider_host="plug").get_configuration_values()
    assert "optional_user" not in values
    with pytest.raises(MalformedRequest):
        build_url("http://{provider_host}/cm?user={optional_user}", values)


def test_empty_host_fails():
    with pytest.raises(MalformedRequest):
        build_url(STATUS_TEMPLATE, {"provider_host": ""})


def test_whitespace_fails():
    with pytest.raises(MalformedRequest):
        build_url(STATUS_TEMPLATE, {"provider_host": "my plug"})


def test_non_http_scheme_fails():
    with pytest.raises(MalformedRequest):
        build_url("ftp://{provider_host}/status", {"provider_host": "plug"})


def test_replace_named_placeholders_without_placeholders():
    assert replace_named_placeholders("http://plug/cm", {}) == "http://plug/cm"


def test_replace_named_placeholders_repeated_key():
    result = replace_named_placeholders("{a}-{a}-{b}", {"a": "x", "b": "y"})
    assert result == "x-x-y"
