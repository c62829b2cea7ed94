"""Tests for exporter config and cookie-file credentials."""

import os
import tempfile

import pytest

from bitcoind_exporter.config import ConfigError, ExporterConfig, read_cookie_file


def _write_cookie(content: str) -> str:
    with tempfile.NamedTemporaryFile("w", suffix=".cookie", delete=False) as f:
        f.write(content)
        return f.name


def test_read_cookie_file():
    path = _write_cookie("__cookie__:4f2a9c0d1e\n")
    try:
        assert read_cookie_file(path) == ("__cookie__", "4f2a9c0d1e")
    finally:
        os.unlink(path)


def test_malformed_cookie_file_rejected():
    path = _write_cookie("no-separator-here")
    try:
        with pytest.raises(ConfigError):
            read_cookie_file(path)
    finally:
        os.unlink(path)


def test_missing_cookie_file_rejected():
    with pytest.raises(ConfigError, match="cannot read cookie file"):
        read_cookie_file("/nonexistent/.cookie")


def test_cookie_file_used_for_auth():
    path = _write_cookie("__cookie__:secret")
    try:
        config = ExporterConfig(cookie_file=path)
        assert config.rpc_auth() == ("__cookie__", "secret")
    finally:
        os.unlink(path)


def test_cookie_and_password_conflict():
    config = ExporterConfig(cookie_file="/tmp/.cookie", rpc_user="u", rpc_password="p")
    with pytest.raises(ConfigError, match="not both"):
        config.rpc_auth()


def test_user_without_password_rejected():
    with pytest.raises(ConfigError, match="together"):
        ExporterConfig(rpc_user="u").rpc_auth()


def test_user_and_password():
    assert ExporterConfig(rpc_user="u", rpc_password="p").rpc_auth() == ("u", "p")


def test_no_credentials():
    assert ExporterConfig().rpc_auth() is None


def test_defaults():
    config = ExporterConfig()
    assert config.rpc_url == "http://127.0.0.1:8332"
    assert config.port == 9332
    assert config.metrics_path == "/metrics"
