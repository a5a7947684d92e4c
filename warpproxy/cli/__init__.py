"""
CLI module for warpproxy.

This module provides the command-line interface for provisioning and
running the local WARP proxy outside a host application.
"""

from warpproxy.cli.commands import main

__all__ = ["main"]
