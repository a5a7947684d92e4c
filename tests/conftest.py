"""
Pytest configuration and shared fixtures.

This module contains pytest fixtures and configuration that are shared
across all test modules.
"""

import io
import tarfile
import zipfile
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from warpproxy.core.settings import ProxySettings
from warpproxy.core.storage import DataLayout
from warpproxy.core.target import Target

SAMPLE_PROFILE = """\
[Interface]
PrivateKey = yAnz5TF+lXXJte14tji3zlMNq+hd2rYUIgJBgB3fBmk=
Address = 172.16.0.2/32
Address = 2606:4700:110:8a36:df92:102a:9602:fa18/128
DNS = 1.1.1.1
MTU = 1280

[Peer]
PublicKey = bmXOC+F1FxEMF9dyiK2H5/1SUtzH0JuVo51h2wPfgyo=
AllowedIPs = 0.0.0.0/0
AllowedIPs = ::/0
Endpoint = engage.cloudflareclient.com:2408
"""


@pytest.fixture
def linux_target() -> Target:
    """Provide a 64-bit Linux target."""
    return Target("Linux", "x86_64")


@pytest.fixture
def windows_target() -> Target:
    """Provide a 64-bit Windows target."""
    return Target("Windows", "AMD64")


@pytest.fixture
def layout(tmp_path, linux_target) -> DataLayout:
    """
    Create a data layout in a temporary directory.

    Returns
    -------
    DataLayout
        Layout rooted at ``tmp_path / "warp"`` (not created yet)
    """
    return DataLayout(tmp_path / "warp", target=linux_target)


@pytest.fixture
def settings(tmp_path) -> ProxySettings:
    """Provide settings without the startup grace period."""
    return ProxySettings(
        data_dir=tmp_path / "warp",
        socks_port=41000,
        startup_grace=0,
        stop_timeout=2.0,
    )


@pytest.fixture
def sample_profile() -> str:
    """Provide the text of a WireGuard profile as written by wgcf."""
    return SAMPLE_PROFILE


@pytest.fixture
def provisioned_layout(layout, sample_profile) -> DataLayout:
    """
    Create a layout where every artifact is already in place.

    Returns
    -------
    DataLayout
        Layout with both tools, the account, the profile and the config
    """
    layout.ensure_directory()
    for tool in ("wgcf", "wireproxy"):
        layout.binary_path(tool).write_bytes(b"#!/bin/sh\n")
    layout.account_path.write_text("access_token = 'x'\n")
    layout.profile_path.write_text(sample_profile)
    layout.proxy_config_path.write_text("[Interface]\n")
    return layout


def make_manifest(*names: str) -> dict:
    """Build a release manifest listing *names* as assets."""
    return {
        "tag_name": "v1.0.0",
        "assets": [
            {
                "name": name,
                "browser_download_url": f"https://github.com/example/releases/download/v1.0.0/{name}",
            }
            for name in names
        ],
    }


def make_zip(files: dict[str, bytes]) -> bytes:
    """Build an in-memory ZIP archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def make_tarball(files: dict[str, bytes]) -> bytes:
    """Build an in-memory gzip tarball."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def json_response(document) -> Mock:
    """Mock a successful JSON response."""
    response = Mock(spec=requests.Response)
    response.status_code = 200
    response.raise_for_status = Mock()
    response.json = Mock(return_value=document)
    return response


def binary_response(content: bytes, chunk_size: int = 7) -> Mock:
    """Mock a successful streamed download split into small chunks."""
    response = Mock(spec=requests.Response)
    response.status_code = 200
    response.raise_for_status = Mock()
    chunks = [content[i : i + chunk_size] for i in range(0, len(content), chunk_size)]
    response.iter_content = Mock(return_value=iter(chunks))
    return response


@pytest.fixture
def fake_proxy(tmp_path) -> Path:
    """
    Create a shell script standing in for the proxy executable.

    The script prints a line and sleeps until terminated.

    Returns
    -------
    Path
        Path to the executable script
    """
    script = tmp_path / "fake-wireproxy"
    script.write_text('#!/bin/sh\necho "listening on $2"\nexec sleep 60\n')
    script.chmod(0o755)
    return script


@pytest.fixture
def exiting_proxy(tmp_path) -> Path:
    """Create a shell script that exits with code 3 right away."""
    script = tmp_path / "exiting-wireproxy"
    script.write_text("#!/bin/sh\necho 'bad config' >&2\nexit 3\n")
    script.chmod(0o755)
    return script
