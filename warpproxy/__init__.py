"""
warpproxy - Local Cloudflare WARP proxy for desktop applications.

This package provisions the ``wgcf`` and ``wireproxy`` tools, registers a
one-time WARP account, renders the proxy configuration and supervises the
``wireproxy`` process, so a host application can route its traffic through
a local SOCKS5 (or HTTP) listener.

Example usage::

    from warpproxy import ProxyFacade

    proxy = ProxyFacade()
    result = proxy.enable()
    if result.success:
        print(f"SOCKS5 proxy on {result.host}:{result.socks_port}")
        directive = proxy.get_proxy_config()
    else:
        print(f"Error: {result.error}")

    proxy.disable()
"""

from warpproxy.account.registrar import AccountRegistrar
from warpproxy.core.profile import parse_profile, render_proxy_config
from warpproxy.core.settings import ProxySettings
from warpproxy.core.storage import DataLayout
from warpproxy.core.target import Target
from warpproxy.download.assets import ReleaseAsset, resolve_asset
from warpproxy.download.provisioner import WGCF, WIREPROXY, BinaryProvisioner, ToolSpec
from warpproxy.exceptions import (
    ArchiveExtractionError,
    AssetNotFoundError,
    ConfigurationError,
    ExternalProcessError,
    NetworkFetchError,
    ProfileError,
    RuntimeExitError,
    SpawnError,
    WarpProxyError,
)
from warpproxy.facade import EnableResult, ProxyDirective, ProxyFacade, ProxyStatus
from warpproxy.supervisor.process import ProcessSupervisor, ProxyState

__version__ = "0.1.0"

__all__ = [
    # Facade
    "ProxyFacade",
    "EnableResult",
    "ProxyStatus",
    "ProxyDirective",
    # Components
    "BinaryProvisioner",
    "ToolSpec",
    "WGCF",
    "WIREPROXY",
    "ReleaseAsset",
    "resolve_asset",
    "AccountRegistrar",
    "parse_profile",
    "render_proxy_config",
    "ProcessSupervisor",
    "ProxyState",
    # Core
    "DataLayout",
    "ProxySettings",
    "Target",
    # Exceptions
    "WarpProxyError",
    "ConfigurationError",
    "NetworkFetchError",
    "AssetNotFoundError",
    "ArchiveExtractionError",
    "ExternalProcessError",
    "ProfileError",
    "SpawnError",
    "RuntimeExitError",
    # Version
    "__version__",
]
