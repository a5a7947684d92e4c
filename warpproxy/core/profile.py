"""
WireGuard profile parsing and wireproxy configuration rendering.

This module translates the ``[Section]`` / ``key = value`` profile written
by the registration tool into the configuration file read by the proxy
tool. Both formats belong to the same INI-like text family.

Examples
--------
>>> profile = parse_profile("[Interface]\\nPrivateKey = abc=\\n")
>>> profile["Interface"]["PrivateKey"]
'abc='
"""

import logging
import re
from pathlib import Path
from typing import Optional

from warpproxy.core.storage import DataLayout
from warpproxy.exceptions import ProfileError

logger = logging.getLogger(__name__)

# Used when the profile carries no Interface.Address
DEFAULT_ADDRESS = "172.16.0.2/32, fd01:db8:1111::2/128"
DEFAULT_DNS = "1.1.1.1"
DEFAULT_MTU = 1280
DEFAULT_KEEPALIVE = 25

# Full-tunnel routing for both address families; never narrowed.
FULL_TUNNEL_ALLOWED_IPS = "0.0.0.0/0, ::/0"

SECTION_PATTERN = re.compile(r"^\[([^\[\]]+)\]$")

REQUIRED_KEYS = (
    ("Interface", "PrivateKey"),
    ("Peer", "PublicKey"),
    ("Peer", "Endpoint"),
)


def parse_profile(text: str) -> dict[str, dict[str, str]]:
    """
    Parse a WireGuard profile into sections.

    A line of the form ``[Name]`` opens section ``Name``. Inside an open
    section, a ``key=value`` line is stored with only the first ``=``
    splitting, so base64 values ending in ``=`` survive. Any other line
    (blank, comment, text before the first section) is ignored.

    Parameters
    ----------
    text : str
        Profile contents

    Returns
    -------
    dict[str, dict[str, str]]
        Mapping of section name to its key/value pairs
    """
    sections: dict[str, dict[str, str]] = {}
    current: Optional[str] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        match = SECTION_PATTERN.match(line)
        if match:
            current = match.group(1).strip()
            sections.setdefault(current, {})
            continue

        if current is None or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            sections[current][key] = value.strip()

    return sections


def _require(profile: dict, section: str, key: str) -> str:
    value = profile.get(section, {}).get(key)
    if not value:
        raise ProfileError(f"Tunnel profile is missing {section}.{key}")
    return value


def render_proxy_config(
    profile: dict[str, dict[str, str]],
    bind_host: str,
    socks_port: int,
    http_port: Optional[int] = None,
) -> str:
    """
    Render the wireproxy configuration for a parsed profile.

    Parameters
    ----------
    profile : dict
        Output of :func:`parse_profile`
    bind_host : str
        Address both listeners bind to
    socks_port : int
        SOCKS5 listener port
    http_port : int, optional
        HTTP listener port (default: ``socks_port + 1``)

    Returns
    -------
    str
        Configuration text

    Raises
    ------
    ProfileError
        If the private key, peer public key or endpoint is missing
    """
    private_key = _require(profile, "Interface", "PrivateKey")
    public_key = _require(profile, "Peer", "PublicKey")
    endpoint = _require(profile, "Peer", "Endpoint")
    address = profile.get("Interface", {}).get("Address") or DEFAULT_ADDRESS

    if http_port is None:
        http_port = socks_port + 1

    lines = [
        "[Interface]",
        f"PrivateKey = {private_key}",
        f"Address = {address}",
        f"DNS = {DEFAULT_DNS}",
        f"MTU = {DEFAULT_MTU}",
        "",
        "[Peer]",
        f"PublicKey = {public_key}",
        f"Endpoint = {endpoint}",
        f"AllowedIPs = {FULL_TUNNEL_ALLOWED_IPS}",
        f"PersistentKeepalive = {DEFAULT_KEEPALIVE}",
        "",
        "[Socks5]",
        f"BindAddress = {bind_host}:{socks_port}",
        "",
        "[http]",
        f"BindAddress = {bind_host}:{http_port}",
    ]
    return "\n".join(lines) + "\n"


def read_profile(path: Path) -> dict[str, dict[str, str]]:
    """Read and parse the profile at *path*."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ProfileError(f"Cannot read tunnel profile {path}: {e}") from e
    return parse_profile(text)


def write_proxy_config(
    layout: DataLayout,
    bind_host: str,
    socks_port: int,
    http_port: Optional[int] = None,
) -> Path:
    """
    Write the proxy configuration unless it already exists.

    An existing configuration is kept as is, even if the profile changed
    since it was rendered; delete it to force a fresh render.

    Parameters
    ----------
    layout : DataLayout
        Data directory layout
    bind_host : str
        Address both listeners bind to
    socks_port : int
        SOCKS5 listener port
    http_port : int, optional
        HTTP listener port (default: ``socks_port + 1``)

    Returns
    -------
    Path
        Path to the proxy configuration
    """
    config_path = layout.proxy_config_path
    if config_path.exists():
        logger.debug(f"Proxy config already present: {config_path}")
        return config_path

    logger.info("Generating wireproxy config...")
    profile = read_profile(layout.profile_path)
    logger.debug(f"Parsed profile sections: {sorted(profile)}")

    text = render_proxy_config(profile, bind_host, socks_port, http_port)
    layout.write_atomic(config_path, text.encode("utf-8"))

    logger.info(f"Wrote proxy config to {config_path}")
    return config_path
