"""
Cloudflare WARP account registration.

This module drives the provisioned ``wgcf`` executable: it registers a
one-time account and derives a WireGuard profile from it. Both steps run
synchronously in the data directory, where ``wgcf`` writes its files.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from warpproxy.core.storage import DataLayout
from warpproxy.core.target import Target
from warpproxy.exceptions import ExternalProcessError

logger = logging.getLogger(__name__)

REGISTER_ARGS = ["register", "--accept-tos"]
GENERATE_ARGS = ["generate"]

# How much of the tool's output is kept in error messages
OUTPUT_TAIL = 600


class AccountRegistrar:
    """
    Creates the WARP account and the tunnel profile on first use.

    Neither step is retried; a failure is terminal for the calling
    sequence. ``wgcf`` is trusted to write its files atomically, so no
    cleanup is attempted after a failure.

    Examples
    --------
    >>> registrar = AccountRegistrar(DataLayout("./warp"))
    >>> registrar.ensure_account()
    PosixPath('warp/wgcf-account.toml')
    >>> registrar.ensure_profile()
    PosixPath('warp/wgcf-profile.conf')
    """

    def __init__(self, layout: DataLayout, target: Optional[Target] = None):
        self._layout = layout
        self._target = target or layout.target

    @property
    def executable(self) -> Path:
        """Return the path of the registration tool."""
        return self._layout.binary_path("wgcf")

    def ensure_account(self) -> Path:
        """
        Register a WARP account unless one already exists.

        Returns
        -------
        Path
            Path to the account file

        Raises
        ------
        ExternalProcessError
            If registration fails
        """
        account_path = self._layout.account_path
        if account_path.exists():
            logger.debug(f"WARP account already present: {account_path}")
            return account_path

        logger.info("Registering with Cloudflare WARP...")
        self._run(REGISTER_ARGS, "register WARP account", account_path)
        logger.info("WARP account registered")
        return account_path

    def ensure_profile(self) -> Path:
        """
        Generate the WireGuard profile unless it already exists.

        Returns
        -------
        Path
            Path to the profile

        Raises
        ------
        ExternalProcessError
            If profile generation fails
        """
        profile_path = self._layout.profile_path
        if profile_path.exists():
            logger.debug(f"WireGuard profile already present: {profile_path}")
            return profile_path

        logger.info("Generating WireGuard profile...")
        self._run(GENERATE_ARGS, "generate WireGuard profile", profile_path)
        logger.info("WireGuard profile generated")
        return profile_path

    def _run(self, args: list[str], description: str, artifact: Path) -> None:
        command = [str(self.executable), *args]
        kwargs = {}
        if self._target.is_windows:
            kwargs["creationflags"] = getattr(subprocess, "CREATE_NO_WINDOW", 0)

        try:
            result = subprocess.run(
                command,
                cwd=self._layout.data_dir,
                capture_output=True,
                text=True,
                errors="replace",
                **kwargs,
            )
        except OSError as e:
            raise ExternalProcessError(
                f"Failed to {description}: could not run {command[0]}: {e}",
                command=command,
            ) from e

        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()[-OUTPUT_TAIL:]
            raise ExternalProcessError(
                f"Failed to {description} (exit code {result.returncode}): {output}",
                command=command,
                returncode=result.returncode,
            )

        if not artifact.exists():
            raise ExternalProcessError(
                f"Failed to {description}: {artifact.name} was not created",
                command=command,
                returncode=result.returncode,
            )
