"""
Provisioning of the external executables.

This module provides the BinaryProvisioner class, which guarantees that a
tool published as a GitHub release asset exists locally: it fetches the
release manifest, picks the asset for the current platform, downloads it
and unpacks it when the asset is an archive.

Callers must not run two ``ensure()`` calls for the same tool at once;
the facade serializes them.
"""

import logging
import os
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests

from warpproxy.core.storage import DataLayout
from warpproxy.core.target import Target
from warpproxy.download.assets import ReleaseAsset, parse_manifest, resolve_asset
from warpproxy.exceptions import (
    ArchiveExtractionError,
    AssetNotFoundError,
    NetworkFetchError,
)

logger = logging.getLogger(__name__)

# Bounds for the search of an extracted executable
MAX_SEARCH_DEPTH = 8
MAX_SEARCH_ENTRIES = 10_000


@dataclass(frozen=True)
class ToolSpec:
    """
    An external tool published as GitHub release assets.

    Attributes
    ----------
    name : str
        Tool name, used as asset prefix and local file name
    releases_url : str
        URL of the ``releases/latest`` API document
    """

    name: str
    releases_url: str


WGCF = ToolSpec(
    name="wgcf",
    releases_url="https://api.github.com/repos/ViRb3/wgcf/releases/latest",
)

WIREPROXY = ToolSpec(
    name="wireproxy",
    releases_url="https://api.github.com/repos/pufferffish/wireproxy/releases/latest",
)


def find_executable(
    root: Path,
    filename: str,
    max_depth: int = MAX_SEARCH_DEPTH,
    max_entries: int = MAX_SEARCH_ENTRIES,
) -> Optional[Path]:
    """
    Find a file by exact name in a directory tree.

    Depth-first search, files of a directory before its subdirectories,
    entries visited in sorted order so the result is deterministic.

    Parameters
    ----------
    root : Path
        Directory to search
    filename : str
        Exact file name to look for
    max_depth : int, optional
        Deepest directory level below *root* that is searched (default: 8)
    max_entries : int, optional
        Maximum number of directory entries inspected (default: 10000)

    Returns
    -------
    Path or None
        First matching file, or None if absent or a limit was reached
    """
    visited = 0
    stack = [(Path(root), 0)]

    while stack:
        directory, depth = stack.pop()
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {directory}: {e}")
            continue

        subdirs = []
        for entry in entries:
            visited += 1
            if visited > max_entries:
                logger.warning(
                    f"Stopped searching for {filename} after {max_entries} entries"
                )
                return None
            if entry.is_symlink():
                continue
            if entry.is_dir():
                if depth < max_depth:
                    subdirs.append(entry)
            elif entry.name == filename:
                return entry

        # Reversed so the alphabetically first subdirectory is popped first
        stack.extend((subdir, depth + 1) for subdir in reversed(subdirs))

    return None


class BinaryProvisioner:
    """
    Ensures external executables exist in the data directory.

    Examples
    --------
    >>> layout = DataLayout("./warp")
    >>> provisioner = BinaryProvisioner(layout)
    >>> provisioner.ensure(WIREPROXY)
    PosixPath('warp/wireproxy')
    """

    DEFAULT_TIMEOUT = 30
    CHUNK_SIZE = 8192
    USER_AGENT = "warpproxy"

    def __init__(
        self,
        layout: DataLayout,
        target: Optional[Target] = None,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the provisioner.

        Parameters
        ----------
        layout : DataLayout
            Data directory layout holding the canonical paths
        target : Target, optional
            Platform to provision for (default: the layout's target)
        session : requests.Session, optional
            HTTP session to use for requests
        timeout : int, optional
            Request timeout in seconds (default: 30)
        """
        self._layout = layout
        self._target = target or layout.target
        self._session = session
        self._timeout = timeout

    @property
    def layout(self) -> DataLayout:
        return self._layout

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers["User-Agent"] = self.USER_AGENT
        return self._session

    # =========================================================================
    # Public API
    # =========================================================================

    def is_provisioned(self, tool: ToolSpec) -> bool:
        """Return True if the tool's executable is already in place."""
        return self._layout.binary_path(tool.name).exists()

    def ensure(self, tool: ToolSpec) -> Path:
        """
        Make sure the executable of *tool* exists locally.

        Parameters
        ----------
        tool : ToolSpec
            Tool to provision

        Returns
        -------
        Path
            Canonical path of the executable

        Raises
        ------
        NetworkFetchError
            If the manifest or the asset cannot be fetched
        AssetNotFoundError
            If no asset matches the platform
        ArchiveExtractionError
            If an archive lacks the executable or cannot be unpacked
        """
        binary_path = self._layout.binary_path(tool.name)
        if binary_path.exists():
            logger.debug(f"{tool.name} already provisioned at {binary_path}")
            return binary_path

        logger.info(f"Downloading {tool.name}...")
        self._layout.ensure_directory()

        assets = self.fetch_manifest(tool)
        asset = resolve_asset(assets, tool.name, self._target)
        if asset is None:
            raise AssetNotFoundError(
                f"Could not find {tool.name} binary for this platform "
                f"({self._target.platform_token}/{self._target.arch_token})",
                tool=tool.name,
                candidates=[a.name for a in assets],
            )

        if asset.is_archive:
            self._install_from_archive(tool, asset, binary_path)
        else:
            self._download(
                asset.download_url,
                lambda response: self._layout.write_atomic(
                    binary_path,
                    self._iter_reader(response),
                    mode=self._file_mode(),
                ),
                description=asset.name,
            )

        logger.info(f"{tool.name} downloaded successfully")
        return binary_path

    def fetch_manifest(self, tool: ToolSpec) -> list[ReleaseAsset]:
        """
        Fetch the latest release manifest of *tool*.

        Raises
        ------
        NetworkFetchError
            If the request fails or the body is not a JSON object
        """
        url = tool.releases_url
        session = self._get_session()

        try:
            response = session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            document = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise NetworkFetchError(
                f"Failed to fetch {tool.name} release manifest: {e}",
                url=url,
                status_code=status,
            ) from e
        except requests.RequestException as e:
            raise NetworkFetchError(
                f"Failed to fetch {tool.name} release manifest: {e}", url=url
            ) from e
        except ValueError as e:
            raise NetworkFetchError(
                f"Invalid {tool.name} release manifest: {e}", url=url
            ) from e

        if not isinstance(document, dict):
            raise NetworkFetchError(
                f"Invalid {tool.name} release manifest: expected a JSON object",
                url=url,
            )
        return parse_manifest(document)

    # =========================================================================
    # Download helpers
    # =========================================================================

    def _download(
        self,
        url: str,
        save: Callable[[requests.Response], Path],
        description: str,
    ) -> Path:
        """Stream *url* into ``save``, wrapping network errors."""
        session = self._get_session()
        logger.debug(f"Downloading {description} from {url}")

        try:
            response = session.get(url, timeout=self._timeout, stream=True)
            response.raise_for_status()
            return save(response)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise NetworkFetchError(
                f"Failed to download {description}: {e}",
                url=url,
                status_code=status,
            ) from e
        except requests.RequestException as e:
            raise NetworkFetchError(
                f"Failed to download {description}: {e}", url=url
            ) from e

    def _iter_reader(self, response: requests.Response):
        """Adapt a streamed response to the file-like interface of write_atomic."""
        return _ChunkReader(response.iter_content(chunk_size=self.CHUNK_SIZE))

    def _file_mode(self) -> Optional[int]:
        return None if self._target.is_windows else 0o755

    # =========================================================================
    # Archive handling
    # =========================================================================

    def _install_from_archive(
        self,
        tool: ToolSpec,
        asset: ReleaseAsset,
        binary_path: Path,
    ) -> None:
        """Download an archive, extract it and copy the executable into place."""
        archive_path = self._layout.data_dir / asset.name
        scratch_dir = self._layout.scratch_dir(tool.name)
        executable_name = self._target.executable_name(tool.name)

        try:
            self._download(
                asset.download_url,
                lambda response: self._layout.write_atomic(
                    archive_path, self._iter_reader(response)
                ),
                description=asset.name,
            )

            self._layout.remove_tree(scratch_dir)
            scratch_dir.mkdir(parents=True)
            extract_archive(archive_path, scratch_dir, asset)

            found = find_executable(scratch_dir, executable_name)
            if found is None:
                raise ArchiveExtractionError(
                    f"{executable_name} not found in archive {asset.name}"
                )

            logger.debug(f"Found {executable_name} at {found}")
            with open(found, "rb") as src:
                self._layout.write_atomic(binary_path, src, mode=self._file_mode())
        finally:
            self._layout.remove_tree(scratch_dir)
            if archive_path.exists():
                archive_path.unlink()


class _ChunkReader:
    """Minimal ``read()`` interface over an iterator of byte chunks."""

    def __init__(self, chunks):
        self._chunks = iter(chunks)

    def read(self, size: int = -1) -> bytes:
        for chunk in self._chunks:
            if chunk:
                return chunk
        return b""


def extract_archive(archive_path: Path, destination: Path, asset: ReleaseAsset) -> None:
    """
    Unpack a zip or gzip tarball into *destination*.

    Raises
    ------
    ArchiveExtractionError
        If the archive is corrupt or an entry escapes *destination*
    """
    logger.debug(f"Extracting {archive_path.name} to {destination}")
    try:
        if asset.is_zip:
            with zipfile.ZipFile(archive_path, "r") as zf:
                root = os.path.realpath(destination)
                for member in zf.namelist():
                    member_path = os.path.realpath(os.path.join(root, member))
                    if os.path.commonpath([root, member_path]) != root:
                        raise ArchiveExtractionError(
                            f"Refusing to extract {member!r} outside {destination}"
                        )
                zf.extractall(destination)
        else:
            with tarfile.open(archive_path, "r:gz") as tar:
                tar.extractall(destination, filter="data")
    except zipfile.BadZipFile as e:
        raise ArchiveExtractionError(f"Invalid ZIP file {asset.name}: {e}") from e
    except tarfile.TarError as e:
        raise ArchiveExtractionError(f"Invalid tar archive {asset.name}: {e}") from e

