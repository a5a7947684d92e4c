"""
Lifecycle management of the wireproxy process.

This module provides the ProcessSupervisor class that owns the single
proxy process of an application run: it spawns it, forwards its output
to the log, notices when it exits and terminates it on request.
"""

import enum
import logging
import subprocess
import threading
from pathlib import Path
from typing import IO, Optional

from warpproxy.core.target import Target
from warpproxy.exceptions import RuntimeExitError, SpawnError

logger = logging.getLogger(__name__)


class ProxyState(enum.Enum):
    """Lifecycle state of the supervised process."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class ProcessSupervisor:
    """
    Owns at most one running proxy process.

    State machine: ``STOPPED → STARTING → RUNNING → STOPPED``. The process
    runs until it exits on its own or ``stop()`` is called; there is no
    automatic restart. An unexpected exit flips the state back to
    ``STOPPED`` and is recorded in ``last_error``.

    Examples
    --------
    >>> supervisor = ProcessSupervisor(Path("warp/wireproxy"), Path("warp/wireproxy.conf"))
    >>> supervisor.start()
    True
    >>> supervisor.is_running()
    True
    >>> supervisor.stop()
    True
    """

    DEFAULT_STOP_TIMEOUT = 5.0  # seconds

    def __init__(
        self,
        executable: Path,
        config_path: Path,
        target: Optional[Target] = None,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ):
        """
        Initialize the supervisor.

        Parameters
        ----------
        executable : Path
            Path to the proxy executable
        config_path : Path
            Configuration file passed to the proxy
        target : Target, optional
            Platform, selects the termination mechanism (default: running platform)
        stop_timeout : float, optional
            Seconds to wait for a terminated process before killing it
        """
        self._executable = Path(executable)
        self._config_path = Path(config_path)
        self._target = target or Target.current()
        self._stop_timeout = stop_timeout

        self._lock = threading.RLock()
        self._process: Optional[subprocess.Popen] = None
        self._state = ProxyState.STOPPED
        self._last_error: Optional[Exception] = None

    @property
    def state(self) -> ProxyState:
        return self._state

    @property
    def pid(self) -> Optional[int]:
        """Return the PID of the running process, if any."""
        process = self._process
        return process.pid if process is not None else None

    @property
    def last_error(self) -> Optional[Exception]:
        """Return the error of the last failed start or unexpected exit."""
        return self._last_error

    def is_running(self) -> bool:
        return self._state is ProxyState.RUNNING

    def command(self) -> list[str]:
        """Return the command line used to spawn the proxy."""
        # wireproxy takes its config file through -c
        return [str(self._executable), "-c", str(self._config_path)]

    def start(self) -> bool:
        """
        Spawn the proxy process.

        Returns as soon as the process is spawned; it does not wait for the
        listeners to bind.

        Returns
        -------
        bool
            True once the process runs (also when it was already running)

        Raises
        ------
        SpawnError
            If the executable cannot be launched
        """
        with self._lock:
            if self._state is ProxyState.RUNNING:
                logger.info("wireproxy already running")
                return True

            logger.info("Starting wireproxy...")
            self._state = ProxyState.STARTING
            self._last_error = None

            kwargs = {}
            if self._target.is_windows:
                kwargs["creationflags"] = getattr(subprocess, "CREATE_NO_WINDOW", 0)

            try:
                process = subprocess.Popen(
                    self.command(),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    stdin=subprocess.DEVNULL,
                    text=True,
                    errors="replace",
                    **kwargs,
                )
            except OSError as e:
                self._state = ProxyState.STOPPED
                self._last_error = SpawnError(f"Failed to start wireproxy: {e}")
                raise self._last_error from e

            self._process = process
            self._state = ProxyState.RUNNING

        self._observe(process)
        logger.info(f"wireproxy started (pid {process.pid})")
        return True

    def stop(self) -> bool:
        """
        Terminate the proxy process.

        The handle is released and the state set to ``STOPPED`` before the
        termination request, so a failing request never leaves a stale
        handle behind.

        Returns
        -------
        bool
            Always True
        """
        with self._lock:
            process = self._process
            self._process = None
            self._state = ProxyState.STOPPED

        if process is None:
            return True

        logger.info("Stopping wireproxy...")
        try:
            self._terminate(process)
            process.wait(timeout=self._stop_timeout)
            logger.info("wireproxy stopped")
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to stop wireproxy: {e}")
            self._kill(process)

        return True

    def _terminate(self, process: subprocess.Popen) -> None:
        if self._target.is_windows:
            subprocess.run(
                ["taskkill", "/pid", str(process.pid), "/f", "/t"],
                capture_output=True,
                check=True,
                creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
            )
        else:
            process.terminate()

    def _kill(self, process: subprocess.Popen) -> None:
        try:
            process.kill()
            process.wait(timeout=self._stop_timeout)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Force kill of wireproxy (pid {process.pid}) failed: {e}")

    # =========================================================================
    # Observers
    # =========================================================================

    def _observe(self, process: subprocess.Popen) -> None:
        """Start the output and exit observer threads for *process*."""
        for stream, level in (
            (process.stdout, logging.INFO),
            (process.stderr, logging.WARNING),
        ):
            if stream is not None:
                threading.Thread(
                    target=self._pump_output,
                    args=(stream, level),
                    name=f"wireproxy-output-{process.pid}",
                    daemon=True,
                ).start()

        threading.Thread(
            target=self._watch_exit,
            args=(process,),
            name=f"wireproxy-watch-{process.pid}",
            daemon=True,
        ).start()

    @staticmethod
    def _pump_output(stream: IO[str], level: int) -> None:
        with stream:
            for line in stream:
                line = line.rstrip()
                if line:
                    logger.log(level, f"wireproxy: {line}")

    def _watch_exit(self, process: subprocess.Popen) -> None:
        returncode = process.wait()
        with self._lock:
            if self._process is not process:
                # Stopped on request
                return
            self._process = None
            self._state = ProxyState.STOPPED
            self._last_error = RuntimeExitError(
                f"wireproxy exited with code {returncode}", returncode=returncode
            )
        logger.warning(f"wireproxy exited with code {returncode}")
