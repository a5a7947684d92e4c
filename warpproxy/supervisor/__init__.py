"""
Supervisor module for warpproxy.

Runs and monitors the ``wireproxy`` process.
"""

from warpproxy.supervisor.process import ProcessSupervisor, ProxyState

__all__ = ["ProcessSupervisor", "ProxyState"]
