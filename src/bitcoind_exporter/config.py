"""Exporter settings, as assembled by the CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from bitcoind_exporter.collector.rpc_client import DEFAULT_RPC_URL

log = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9332
DEFAULT_METRICS_PATH = "/metrics"


class ConfigError(Exception):
    pass


def read_cookie_file(path: str) -> Tuple[str, str]:
    """Parse bitcoind's `.cookie` file (a single `user:password` line)."""
    try:
        content = Path(path).read_text().strip()
    except OSError as e:
        raise ConfigError(f"cannot read cookie file {path}: {e.strerror}") from e

    user, sep, password = content.partition(":")
    if not sep or not user:
        raise ConfigError(f"malformed cookie file {path}: expected user:password")
    return user, password


@dataclass
class ExporterConfig:
    rpc_url: str = DEFAULT_RPC_URL
    rpc_user: Optional[str] = None
    rpc_password: Optional[str] = None
    cookie_file: Optional[str] = None
    rpc_timeout: float = 30.0
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    metrics_path: str = DEFAULT_METRICS_PATH

    def rpc_auth(self) -> Optional[Tuple[str, str]]:
        """Credentials for the node. A cookie file can't be combined with
        an explicit user/password."""
        if self.cookie_file:
            if self.rpc_user or self.rpc_password:
                raise ConfigError("use either --cookie-file or --rpc-user/--rpc-password, not both")
            # bitcoind rewrites the cookie on every restart, read it now
            return read_cookie_file(self.cookie_file)

        if self.rpc_user is None and self.rpc_password is None:
            log.warning("No RPC credentials configured; the node will likely reject requests")
            return None
        if self.rpc_user is None or self.rpc_password is None:
            raise ConfigError("--rpc-user and --rpc-password must be given together")
        return self.rpc_user, self.rpc_password
