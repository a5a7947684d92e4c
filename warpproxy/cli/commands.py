"""
Command-line interface for warpproxy.

This module provides CLI commands for provisioning the WARP tools,
running the local proxy in the foreground and inspecting the data
directory.
"""

import argparse
import logging
import sys
import time
from typing import Optional

from warpproxy.core.profile import read_profile, render_proxy_config
from warpproxy.core.settings import ProxySettings
from warpproxy.exceptions import ConfigurationError, WarpProxyError
from warpproxy.facade import ProxyFacade

POLL_INTERVAL = 1.0  # seconds


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser
    """
    from warpproxy import __version__

    parser = argparse.ArgumentParser(
        prog="warpproxy",
        description="Run a local SOCKS5/HTTP proxy through Cloudflare WARP",
        epilog="Example: warpproxy run --port 40000",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log provisioning and proxy output to stderr",
    )
    parser.add_argument(
        "--data-dir",
        metavar="DIR",
        help="Directory for tools, account and configs "
        "(default: per-user data directory, or $WARPPROXY_DATA_DIR)",
    )
    parser.add_argument(
        "--host",
        metavar="HOST",
        help="Listener address (default: 127.0.0.1, or $WARPPROXY_HOST)",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        metavar="PORT",
        help="SOCKS5 port; HTTP uses PORT+1 (default: 40000, or $WARPPROXY_PORT)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "run",
        help="Enable the proxy and keep it running until interrupted",
        description="Provision what is missing, start wireproxy and wait for Ctrl+C",
    )
    subparsers.add_parser(
        "provision",
        help="Download tools, register and generate configs without starting",
        description="Prepare every artifact in the data directory",
    )
    subparsers.add_parser(
        "info",
        help="Show the data directory and which artifacts exist",
    )
    subparsers.add_parser(
        "render",
        help="Print the proxy config rendered from the current profile",
        description="Render the wireproxy config to stdout without writing it",
    )
    reset_parser = subparsers.add_parser(
        "reset",
        help="Delete the generated proxy config so it is rendered again",
    )
    reset_parser.add_argument(
        "--profile",
        action="store_true",
        help="Also delete the WireGuard profile (regenerated from the account)",
    )

    return parser


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; INFO when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_settings(args: argparse.Namespace) -> ProxySettings:
    """Combine environment variables with command-line overrides."""
    return ProxySettings.from_env(
        data_dir=args.data_dir,
        host=args.host,
        socks_port=args.port,
    )


def cmd_run(facade: ProxyFacade) -> int:
    """
    Execute the run command.

    Returns
    -------
    int
        Exit code (0 after a clean interrupt, 1 on error or unexpected exit)
    """
    print("Enabling WARP proxy...")
    result = facade.enable()
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    print(f"SOCKS5 proxy: socks5://{result.host}:{result.socks_port}")
    print(f"HTTP proxy:   http://{result.host}:{result.http_port}")
    print("Press Ctrl+C to stop")

    try:
        while facade.is_enabled():
            time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        print()
        facade.disable()
        print("Proxy stopped")
        return 0

    status = facade.status()
    print(f"Error: {status.error or 'wireproxy stopped'}", file=sys.stderr)
    return 1


def cmd_provision(facade: ProxyFacade) -> int:
    """Execute the provision command."""
    print(f"Provisioning into {facade.layout.data_dir}...")
    result = facade.provision()
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    print("Ready")
    return 0


def format_info(facade: ProxyFacade) -> str:
    """
    Format the data directory contents.

    Returns
    -------
    str
        One line per artifact with its presence and path
    """
    settings = facade.settings
    lines = [
        f"Data directory: {facade.layout.data_dir}",
        f"SOCKS5 listener: {settings.host}:{settings.socks_port}",
        f"HTTP listener:   {settings.host}:{settings.http_port}",
        "",
        "Artifacts:",
    ]
    for label, path in facade.layout.artifacts().items():
        mark = "✓" if path.exists() else "✗"
        lines.append(f"  {mark} {label:<13} {path}")
    return "\n".join(lines)


def cmd_render(facade: ProxyFacade) -> int:
    """Execute the render command."""
    settings = facade.settings
    profile_path = facade.layout.profile_path
    if not profile_path.exists():
        print(
            f"Error: no WireGuard profile at {profile_path}; run 'warpproxy provision'",
            file=sys.stderr,
        )
        return 1

    try:
        profile = read_profile(profile_path)
        text = render_proxy_config(
            profile, settings.host, settings.socks_port, settings.http_port
        )
    except WarpProxyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(text, end="")
    return 0


def cmd_reset(facade: ProxyFacade, include_profile: bool = False) -> int:
    """Execute the reset command."""
    layout = facade.layout
    paths = [layout.proxy_config_path]
    if include_profile:
        paths.append(layout.profile_path)

    for path in paths:
        if layout.delete(path):
            print(f"Deleted {path}")
        else:
            print(f"Not present: {path}")
    return 0


def main(args: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Parameters
    ----------
    args : list[str], optional
        Command-line arguments (defaults to sys.argv[1:])

    Returns
    -------
    int
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    configure_logging(parsed_args.verbose)

    try:
        settings = build_settings(parsed_args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    facade = ProxyFacade(settings=settings)

    if parsed_args.command == "run":
        return cmd_run(facade)

    if parsed_args.command == "provision":
        return cmd_provision(facade)

    if parsed_args.command == "info":
        print(format_info(facade))
        return 0

    if parsed_args.command == "render":
        return cmd_render(facade)

    if parsed_args.command == "reset":
        return cmd_reset(facade, include_profile=parsed_args.profile)

    # Unknown command (shouldn't happen with argparse)
    print(f"Unknown command: {parsed_args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
