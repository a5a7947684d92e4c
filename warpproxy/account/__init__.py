"""
Account module for warpproxy.

Registers the Cloudflare WARP account and generates the WireGuard
profile with the provisioned ``wgcf`` tool.
"""

from warpproxy.account.registrar import AccountRegistrar

__all__ = ["AccountRegistrar"]
