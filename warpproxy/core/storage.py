"""
Data directory layout for provisioned tools and generated files.

This module provides the DataLayout class that knows the fixed, well-known
file names inside the per-user data directory and performs atomic writes.
"""

import shutil
from pathlib import Path
from typing import BinaryIO, Optional

from warpproxy.core.target import Target

ACCOUNT_FILENAME = "wgcf-account.toml"
PROFILE_FILENAME = "wgcf-profile.conf"
PROXY_CONFIG_FILENAME = "wireproxy.conf"


class DataLayout:
    """
    Manages the flat file layout of the data directory.

    All artifacts live directly in the data directory:

        <data_dir>/wgcf[.exe]            registration tool
        <data_dir>/wireproxy[.exe]       proxy tool
        <data_dir>/wgcf-account.toml     account created by registration
        <data_dir>/wgcf-profile.conf     WireGuard profile
        <data_dir>/wireproxy.conf        proxy configuration

    Every artifact is created only when absent; nothing here overwrites an
    existing file except through an explicit ``delete`` first.

    Attributes
    ----------
    data_dir : Path
        Base directory for all artifacts
    target : Target
        Platform used to name executables

    Examples
    --------
    >>> layout = DataLayout("./warp", target=Target("Windows", "AMD64"))
    >>> layout.binary_path("wgcf").name
    'wgcf.exe'

    Notes
    -----
    All write operations use atomic writes (temp file → rename) so that a
    failure never leaves a partial file at a canonical path.
    """

    def __init__(self, data_dir: str | Path, target: Optional[Target] = None):
        """
        Initialize the layout.

        Parameters
        ----------
        data_dir : str or Path
            Base directory. Created by ``ensure_directory``.
        target : Target, optional
            Platform used to name executables (default: running platform)
        """
        self._data_dir = Path(data_dir)
        self._target = target or Target.current()

    @property
    def data_dir(self) -> Path:
        """Return the base data directory."""
        return self._data_dir

    @property
    def target(self) -> Target:
        """Return the platform used to name executables."""
        return self._target

    @property
    def account_path(self) -> Path:
        return self._data_dir / ACCOUNT_FILENAME

    @property
    def profile_path(self) -> Path:
        return self._data_dir / PROFILE_FILENAME

    @property
    def proxy_config_path(self) -> Path:
        return self._data_dir / PROXY_CONFIG_FILENAME

    def binary_path(self, tool: str) -> Path:
        """
        Return the canonical path of a provisioned executable.

        Parameters
        ----------
        tool : str
            Tool name (e.g., "wgcf")

        Returns
        -------
        Path
            ``<data_dir>/<tool>`` with ``.exe`` appended on Windows
        """
        return self._data_dir / self._target.executable_name(tool)

    def scratch_dir(self, tool: str) -> Path:
        """Return the directory archives of *tool* are extracted into."""
        return self._data_dir / f"{tool}_extract"

    def ensure_directory(self) -> Path:
        """
        Ensure the data directory exists.

        Returns
        -------
        Path
            Path to the directory (created if needed)
        """
        self._data_dir.mkdir(parents=True, exist_ok=True)
        return self._data_dir

    def write_atomic(
        self,
        target_path: Path,
        content: bytes | BinaryIO,
        mode: Optional[int] = None,
    ) -> Path:
        """
        Write content to file atomically.

        Uses a temporary file and atomic rename to prevent partial files.

        Parameters
        ----------
        target_path : Path
            Final location of the file
        content : bytes or BinaryIO
            Content to write (bytes or file-like object)
        mode : int, optional
            Permission bits applied to the temporary file before the rename

        Returns
        -------
        Path
            Path to the written file
        """
        target_path = Path(target_path)
        target_path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = target_path.with_name(target_path.name + ".tmp")

        try:
            with open(temp_path, "wb") as f:
                if isinstance(content, bytes):
                    f.write(content)
                else:
                    # File-like object
                    for chunk in iter(lambda: content.read(8192), b""):
                        f.write(chunk)

            if mode is not None:
                temp_path.chmod(mode)

            # Atomic rename
            temp_path.replace(target_path)
            return target_path

        except Exception:
            # Clean up temp file on error
            if temp_path.exists():
                temp_path.unlink()
            raise

    def delete(self, path: Path) -> bool:
        """
        Delete an artifact.

        Returns
        -------
        bool
            True if the file was deleted, False if it didn't exist
        """
        path = Path(path)
        if path.exists():
            path.unlink()
            return True
        return False

    def remove_tree(self, path: Path) -> None:
        """Remove a scratch directory if present."""
        shutil.rmtree(path, ignore_errors=True)

    def artifacts(self) -> dict[str, Path]:
        """Return every well-known artifact keyed by a short label."""
        return {
            "wgcf": self.binary_path("wgcf"),
            "wireproxy": self.binary_path("wireproxy"),
            "account": self.account_path,
            "profile": self.profile_path,
            "proxy config": self.proxy_config_path,
        }

    def __repr__(self) -> str:
        """Return string representation."""
        return f"DataLayout(data_dir='{self._data_dir}', target={self._target!r})"
