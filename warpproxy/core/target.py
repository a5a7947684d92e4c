"""
Platform description used to name and select external executables.
"""

import platform
from dataclasses import dataclass

X86_64_MACHINES = {"x86_64", "amd64", "x64"}
ARM64_MACHINES = {"arm64", "aarch64"}


@dataclass(frozen=True)
class Target:
    """
    Platform an external tool is provisioned for.

    Attributes
    ----------
    system : str
        Operating system name as reported by ``platform.system()``
    machine : str
        Machine type as reported by ``platform.machine()``

    Examples
    --------
    >>> target = Target("Linux", "x86_64")
    >>> target.platform_token, target.arch_token
    ('linux', 'amd64')
    """

    system: str
    machine: str

    @classmethod
    def current(cls) -> "Target":
        """Return the target describing the running interpreter."""
        return cls(platform.system(), platform.machine())

    @property
    def is_windows(self) -> bool:
        return self.system.lower() == "windows"

    @property
    def is_macos(self) -> bool:
        return self.system.lower() == "darwin"

    @property
    def executable_suffix(self) -> str:
        return ".exe" if self.is_windows else ""

    @property
    def platform_token(self) -> str:
        """Return the platform name used in release asset names."""
        if self.is_windows:
            return "windows"
        if self.is_macos:
            return "darwin"
        return "linux"

    @property
    def arch_token(self) -> str:
        """Return the architecture name used in release asset names."""
        machine = self.machine.lower()
        if machine in X86_64_MACHINES:
            return "amd64"
        if machine in ARM64_MACHINES:
            return "arm64"
        if self.is_macos:
            return "amd64"
        return self.machine

    def executable_name(self, tool: str) -> str:
        """Return the local file name of *tool* on this platform."""
        return f"{tool}{self.executable_suffix}"
