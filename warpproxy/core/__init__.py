"""
Core module for warpproxy.

This module contains the platform description, settings, the data
directory layout and the profile to proxy-config translation.
"""

from warpproxy.core.profile import parse_profile, render_proxy_config, write_proxy_config
from warpproxy.core.settings import ProxySettings
from warpproxy.core.storage import DataLayout
from warpproxy.core.target import Target

__all__ = [
    "DataLayout",
    "ProxySettings",
    "Target",
    "parse_profile",
    "render_proxy_config",
    "write_proxy_config",
]
