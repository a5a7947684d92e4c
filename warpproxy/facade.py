"""
Facade over the WARP proxy subsystem.

ProxyFacade is the only entry point surrounding code needs: it sequences
provisioning, registration, config rendering and process supervision into
``enable``/``disable``/``status``/``get_proxy_config``.

Examples
--------
>>> proxy = ProxyFacade()
>>> result = proxy.enable()
>>> if result.success:
...     session.proxies.update(proxy.get_proxy_config().to_requests_proxies())
>>> proxy.disable()
EnableResult(success=True, ...)
"""

import atexit
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from warpproxy.account.registrar import AccountRegistrar
from warpproxy.core.profile import write_proxy_config
from warpproxy.core.settings import ProxySettings
from warpproxy.core.storage import DataLayout
from warpproxy.core.target import Target
from warpproxy.download.provisioner import WGCF, WIREPROXY, BinaryProvisioner
from warpproxy.exceptions import RuntimeExitError, WarpProxyError
from warpproxy.supervisor.process import ProcessSupervisor

logger = logging.getLogger(__name__)

LOCAL_BYPASS_RULE = "<local>"


@dataclass(frozen=True)
class EnableResult:
    """
    Outcome of a facade operation.

    Attributes
    ----------
    success : bool
        Whether the operation completed
    host : str, optional
        Listener address (successful enable/provision only)
    socks_port : int, optional
        SOCKS5 listener port
    http_port : int, optional
        HTTP listener port
    error : str, optional
        Message of the failed step, meant for the end user
    """

    success: bool
    host: Optional[str] = None
    socks_port: Optional[int] = None
    http_port: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ProxyStatus:
    """Snapshot of the proxy state."""

    enabled: bool
    host: str
    socks_port: int
    http_port: int
    error: Optional[str] = None


@dataclass(frozen=True)
class ProxyDirective:
    """
    Proxy settings for the host's network client.

    Attributes
    ----------
    proxy_rules : str
        ``socks5://host:port`` while enabled, empty otherwise
    proxy_bypass_rules : str
        Addresses that skip the proxy (``<local>`` while enabled)
    """

    proxy_rules: str = ""
    proxy_bypass_rules: str = ""

    @property
    def is_direct(self) -> bool:
        return not self.proxy_rules

    def to_requests_proxies(self) -> dict[str, str]:
        """
        Return the directive as a ``requests`` proxies mapping.

        ``socks5h`` resolves hostnames through the tunnel. Requires the
        ``requests[socks]`` extra at request time.
        """
        if self.is_direct:
            return {}
        url = self.proxy_rules.replace("socks5://", "socks5h://", 1)
        return {"http": url, "https": url}


Stage = tuple[str, Callable[[], object]]


class ProxyFacade:
    """
    Enables and disables the local WARP proxy.

    One instance per application run. ``enable``, ``disable`` and
    ``provision`` are serialized with a lock, so overlapping calls from
    several threads queue instead of racing on the data directory and
    the process handle.
    """

    def __init__(
        self,
        settings: Optional[ProxySettings] = None,
        layout: Optional[DataLayout] = None,
        provisioner: Optional[BinaryProvisioner] = None,
        registrar: Optional[AccountRegistrar] = None,
        supervisor: Optional[ProcessSupervisor] = None,
        target: Optional[Target] = None,
        register_cleanup: bool = True,
    ):
        """
        Initialize the facade.

        Parameters
        ----------
        settings : ProxySettings, optional
            Listener address, data directory and timings
            (default: ``ProxySettings.from_env()``)
        layout, provisioner, registrar, supervisor : optional
            Collaborators; built from *settings* when omitted
        target : Target, optional
            Platform to provision for (default: running platform)
        register_cleanup : bool, optional
            Stop the proxy at interpreter exit (default: True)
        """
        self._settings = settings or ProxySettings.from_env()
        target = target or (layout.target if layout else Target.current())

        self._layout = layout or DataLayout(self._settings.data_dir, target=target)
        self._provisioner = provisioner or BinaryProvisioner(
            self._layout, target=target, timeout=self._settings.request_timeout
        )
        self._registrar = registrar or AccountRegistrar(self._layout, target=target)
        self._supervisor = supervisor or ProcessSupervisor(
            self._layout.binary_path(WIREPROXY.name),
            self._layout.proxy_config_path,
            target=target,
            stop_timeout=self._settings.stop_timeout,
        )

        self._lock = threading.Lock()
        self._last_error: Optional[str] = None

        if register_cleanup:
            atexit.register(self.cleanup)

    @property
    def settings(self) -> ProxySettings:
        return self._settings

    @property
    def layout(self) -> DataLayout:
        return self._layout

    @property
    def supervisor(self) -> ProcessSupervisor:
        return self._supervisor

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _provisioning_stages(self) -> list[Stage]:
        settings = self._settings
        return [
            ("prepare data directory", self._layout.ensure_directory),
            ("download wgcf", lambda: self._provisioner.ensure(WGCF)),
            ("download wireproxy", lambda: self._provisioner.ensure(WIREPROXY)),
            ("register WARP account", self._registrar.ensure_account),
            ("generate WireGuard profile", self._registrar.ensure_profile),
            (
                "generate wireproxy config",
                lambda: write_proxy_config(
                    self._layout,
                    settings.host,
                    settings.socks_port,
                    settings.http_port,
                ),
            ),
        ]

    def _run_pipeline(self, stages: list[Stage]) -> EnableResult:
        """Run *stages* in order; the first failure ends the run."""
        for description, stage in stages:
            logger.debug(f"Stage: {description}")
            try:
                stage()
            except WarpProxyError as e:
                return self._failure(description, str(e))
            except OSError as e:
                return self._failure(description, f"Failed to {description}: {e}")
            except Exception as e:
                logger.debug(f"Unexpected error at '{description}'", exc_info=True)
                return self._failure(description, f"Failed to {description}: {e}")

        self._last_error = None
        return EnableResult(
            success=True,
            host=self._settings.host,
            socks_port=self._settings.socks_port,
            http_port=self._settings.http_port,
        )

    def _confirm_running(self) -> None:
        """Raise if the proxy already exited during the startup grace period."""
        if self._supervisor.is_running():
            return
        error = self._supervisor.last_error
        returncode = getattr(error, "returncode", None)
        raise RuntimeExitError(
            str(error) if error else "wireproxy exited during startup",
            returncode=returncode,
        )

    def _failure(self, description: str, message: str) -> EnableResult:
        logger.error(f"Failed to enable WARP proxy at '{description}': {message}")
        self._last_error = message
        return EnableResult(success=False, error=message)

    # =========================================================================
    # Public API
    # =========================================================================

    def enable(self) -> EnableResult:
        """
        Provision everything that is missing and start the proxy.

        Already completed steps are not rolled back when a later step
        fails.

        Returns
        -------
        EnableResult
            Listener address on success, the failed step's message otherwise
        """
        with self._lock:
            stages = self._provisioning_stages()
            stages.append(("start wireproxy", self._supervisor.start))
            stages.append(
                ("wait for wireproxy", lambda: time.sleep(self._settings.startup_grace))
            )
            stages.append(("confirm wireproxy is running", self._confirm_running))
            result = self._run_pipeline(stages)

        if result.success:
            logger.info(
                f"WARP proxy enabled on socks5://{result.host}:{result.socks_port}"
            )
        return result

    def provision(self) -> EnableResult:
        """Prepare tools, account, profile and config without starting the proxy."""
        with self._lock:
            return self._run_pipeline(self._provisioning_stages())

    def disable(self) -> EnableResult:
        """
        Stop the proxy.

        Best effort and idempotent: always reports success.
        """
        with self._lock:
            self._supervisor.stop()
        return EnableResult(success=True)

    def is_enabled(self) -> bool:
        return self._supervisor.is_running()

    def status(self) -> ProxyStatus:
        """Return whether the proxy runs, where it listens and the last error."""
        error = self._last_error
        if error is None and self._supervisor.last_error is not None:
            error = str(self._supervisor.last_error)
        return ProxyStatus(
            enabled=self.is_enabled(),
            host=self._settings.host,
            socks_port=self._settings.socks_port,
            http_port=self._settings.http_port,
            error=error,
        )

    def get_proxy_config(self) -> ProxyDirective:
        """
        Return the proxy directive for the host's network client.

        Returns
        -------
        ProxyDirective
            SOCKS5 rule plus local bypass while enabled, direct otherwise
        """
        if not self.is_enabled():
            return ProxyDirective()
        return ProxyDirective(
            proxy_rules=f"socks5://{self._settings.host}:{self._settings.socks_port}",
            proxy_bypass_rules=LOCAL_BYPASS_RULE,
        )

    def cleanup(self) -> None:
        """Stop the proxy on host shutdown."""
        self._supervisor.stop()

    def __repr__(self) -> str:
        return (
            f"ProxyFacade(data_dir='{self._layout.data_dir}', "
            f"socks5://{self._settings.host}:{self._settings.socks_port})"
        )
