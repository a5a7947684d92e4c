"""
Release asset resolution.

This module maps a (platform, architecture) target to the matching
downloadable artifact listed in a GitHub release manifest.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from warpproxy.core.target import Target

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseAsset:
    """A downloadable artifact of a release."""

    name: str
    download_url: str

    @property
    def is_zip(self) -> bool:
        return self.name.lower().endswith(".zip")

    @property
    def is_tarball(self) -> bool:
        return self.name.lower().endswith((".tar.gz", ".tgz"))

    @property
    def is_archive(self) -> bool:
        return self.is_zip or self.is_tarball


def parse_manifest(document: dict) -> list[ReleaseAsset]:
    """
    Extract release assets from a GitHub release manifest.

    Parameters
    ----------
    document : dict
        Decoded JSON of a ``releases/latest`` response

    Returns
    -------
    list[ReleaseAsset]
        Assets having both a name and a download URL, in manifest order
    """
    assets = []
    for entry in document.get("assets") or []:
        name = entry.get("name")
        url = entry.get("browser_download_url")
        if name and url:
            assets.append(ReleaseAsset(name=name, download_url=url))
    return assets


def candidate_patterns(prefix: str, target: Target) -> list:
    """
    Return asset name patterns for *target* in priority order.

    The first two entries are exact names (compared case-insensitively),
    the last one is a regular expression requiring both tokens.
    """
    plat = target.platform_token
    arch = target.arch_token
    ext = target.executable_suffix
    return [
        f"{prefix}_{plat}_{arch}{ext}",
        f"{prefix}-{plat}-{arch}{ext}",
        re.compile(
            f"{re.escape(prefix)}.*{re.escape(plat)}.*{re.escape(arch)}",
            re.IGNORECASE,
        ),
    ]


def resolve_asset(
    assets: Iterable[ReleaseAsset],
    prefix: str,
    target: Optional[Target] = None,
) -> Optional[ReleaseAsset]:
    """
    Pick the release asset matching *target*.

    Parameters
    ----------
    assets : iterable of ReleaseAsset
        Candidates from the release manifest
    prefix : str
        Tool name prefix (e.g., "wireproxy")
    target : Target, optional
        Platform to resolve for (default: the running platform)

    Returns
    -------
    ReleaseAsset or None
        The first asset matching the highest-priority pattern, or None

    Examples
    --------
    >>> assets = [
    ...     ReleaseAsset("tool_windows_amd64.exe", "https://example.com/a"),
    ...     ReleaseAsset("tool_linux_amd64", "https://example.com/b"),
    ... ]
    >>> resolve_asset(assets, "tool", Target("Linux", "x86_64")).name
    'tool_linux_amd64'
    """
    target = target or Target.current()
    assets = list(assets)

    for pattern in candidate_patterns(prefix, target):
        for asset in assets:
            if isinstance(pattern, str):
                matched = asset.name.lower() == pattern.lower()
            else:
                matched = pattern.search(asset.name) is not None
            if matched:
                logger.debug(f"Resolved {prefix} asset for {target}: {asset.name}")
                return asset

    return None
