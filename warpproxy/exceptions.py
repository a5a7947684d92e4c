"""
Custom exceptions for warpproxy.

This module defines all custom exceptions used throughout the warpproxy package.
All exceptions inherit from WarpProxyError so the facade (and any host
application) can catch every provisioning failure with a single except clause.
"""


class WarpProxyError(Exception):
    """
    Base exception for all warpproxy errors.

    The message of a WarpProxyError is meant to be shown to the end user
    verbatim, so it should describe the failed step in plain words.

    Examples
    --------
    >>> try:
    ...     # some warpproxy operation
    ...     pass
    ... except WarpProxyError as e:
    ...     print(f"warpproxy error: {e}")
    """

    pass


class ConfigurationError(WarpProxyError):
    """
    Invalid settings.

    Raised when a setting or environment override cannot be used,
    such as a port outside the valid range.

    Examples
    --------
    >>> raise ConfigurationError("WARPPROXY_PORT must be an integer, got 'abc'")
    """

    pass


class NetworkFetchError(WarpProxyError):
    """
    Error fetching a release manifest or downloading a release asset.

    Covers connection errors, HTTP errors, timeouts and exhausted
    redirect chains.

    Attributes
    ----------
    url : str, optional
        The URL that was being fetched when the error occurred.
    status_code : int, optional
        HTTP status code if applicable.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class AssetNotFoundError(WarpProxyError):
    """
    No release asset matches the current platform and architecture.

    Attributes
    ----------
    tool : str, optional
        Name of the tool being provisioned.
    candidates : list[str]
        Asset names offered by the release manifest.
    """

    def __init__(
        self,
        message: str,
        tool: str | None = None,
        candidates: list[str] | None = None,
    ):
        super().__init__(message)
        self.tool = tool
        self.candidates = candidates or []


class ArchiveExtractionError(WarpProxyError):
    """
    A downloaded archive could not be unpacked or lacks the expected executable.
    """

    pass


class ExternalProcessError(WarpProxyError):
    """
    A registration or profile-generation command failed.

    Raised when the command cannot be launched, exits with a non-zero
    status, or exits cleanly without producing its artifact.

    Attributes
    ----------
    command : list[str], optional
        The command line that was executed.
    returncode : int, optional
        Exit status of the command, None if it never started.
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
    ):
        super().__init__(message)
        self.command = command
        self.returncode = returncode


class ProfileError(WarpProxyError):
    """
    The tunnel profile is missing a key required to render the proxy config.
    """

    pass


class SpawnError(WarpProxyError):
    """
    The proxy executable could not be launched.
    """

    pass


class RuntimeExitError(WarpProxyError):
    """
    The proxy process exited on its own after a successful start.

    Never raised by the supervisor; it is recorded as the supervisor's
    ``last_error`` and surfaced through the facade's status.

    Attributes
    ----------
    returncode : int, optional
        Exit status reported by the operating system.
    """

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode
