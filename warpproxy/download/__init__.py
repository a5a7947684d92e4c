"""
Download module for warpproxy.

This module contains classes for provisioning the external executables:
- ReleaseAsset / resolve_asset: pick the release asset for a platform
- BinaryProvisioner: download and unpack a tool if it is missing
"""

from warpproxy.download.assets import ReleaseAsset, parse_manifest, resolve_asset
from warpproxy.download.provisioner import (
    WGCF,
    WIREPROXY,
    BinaryProvisioner,
    ToolSpec,
    find_executable,
)

__all__ = [
    "ReleaseAsset",
    "parse_manifest",
    "resolve_asset",
    "BinaryProvisioner",
    "ToolSpec",
    "WGCF",
    "WIREPROXY",
    "find_executable",
]
