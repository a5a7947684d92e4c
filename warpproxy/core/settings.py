"""
Settings for the local WARP proxy.

This module provides the ProxySettings dataclass holding the listener
address, the per-user data directory and the timing knobs used by the
facade, together with environment variable overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import appdirs

from warpproxy.exceptions import ConfigurationError

APP_NAME = "warpproxy"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_SOCKS_PORT = 40000
DEFAULT_STARTUP_GRACE = 1.0  # seconds
DEFAULT_REQUEST_TIMEOUT = 30  # seconds
DEFAULT_STOP_TIMEOUT = 5.0  # seconds

ENV_DATA_DIR = "WARPPROXY_DATA_DIR"
ENV_HOST = "WARPPROXY_HOST"
ENV_PORT = "WARPPROXY_PORT"


def default_data_dir() -> Path:
    """Return the per-user directory holding tools, account and configs."""
    return Path(appdirs.user_data_dir(APP_NAME)) / "warp"


def _parse_port(value: str, source: str) -> int:
    try:
        port = int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{source} must be an integer port number, got {value!r}"
        ) from e

    # The HTTP listener takes port + 1, so the SOCKS port stops one short.
    if not 1 <= port <= 65534:
        raise ConfigurationError(f"{source} must be between 1 and 65534, got {port}")
    return port


@dataclass(frozen=True)
class ProxySettings:
    """
    Settings for one application run.

    Attributes
    ----------
    data_dir : Path
        Directory holding the provisioned tools and generated files
    host : str
        Address the proxy listeners bind to
    socks_port : int
        SOCKS5 listener port; the HTTP listener uses the next port
    startup_grace : float
        Seconds to wait after spawning the proxy before reporting success
    request_timeout : int
        Timeout in seconds for manifest and download requests
    stop_timeout : float
        Seconds to wait for the proxy to exit before killing it

    Examples
    --------
    >>> settings = ProxySettings(socks_port=41000)
    >>> settings.http_port
    41001
    """

    data_dir: Path = field(default_factory=default_data_dir)
    host: str = DEFAULT_HOST
    socks_port: int = DEFAULT_SOCKS_PORT
    startup_grace: float = DEFAULT_STARTUP_GRACE
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    stop_timeout: float = DEFAULT_STOP_TIMEOUT

    def __post_init__(self):
        object.__setattr__(self, "data_dir", Path(self.data_dir))
        _parse_port(str(self.socks_port), "socks_port")

    @property
    def http_port(self) -> int:
        """Return the HTTP listener port."""
        return self.socks_port + 1

    @classmethod
    def from_env(cls, environ: dict | None = None, **overrides) -> "ProxySettings":
        """
        Build settings from environment variables.

        Parameters
        ----------
        environ : dict, optional
            Mapping to read instead of ``os.environ``
        **overrides
            Explicit values (e.g. from CLI flags); ``None`` values are ignored

        Returns
        -------
        ProxySettings
            Settings with environment and explicit overrides applied

        Raises
        ------
        ConfigurationError
            If an override is not usable
        """
        env = os.environ if environ is None else environ
        values = {}

        if env.get(ENV_DATA_DIR, "").strip():
            values["data_dir"] = Path(env[ENV_DATA_DIR].strip()).expanduser()
        if env.get(ENV_HOST, "").strip():
            values["host"] = env[ENV_HOST].strip()
        if env.get(ENV_PORT, "").strip():
            values["socks_port"] = _parse_port(env[ENV_PORT].strip(), ENV_PORT)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
