"""
Unit tests for settings and the data directory layout.
"""

import io
from pathlib import Path

import pytest

from warpproxy.core.settings import (
    APP_NAME,
    DEFAULT_SOCKS_PORT,
    ProxySettings,
    default_data_dir,
)
from warpproxy.core.storage import DataLayout
from warpproxy.core.target import Target
from warpproxy.exceptions import ConfigurationError


class TestProxySettings:
    """Tests for ProxySettings."""

    def test_defaults(self):
        settings = ProxySettings()

        assert settings.host == "127.0.0.1"
        assert settings.socks_port == DEFAULT_SOCKS_PORT == 40000
        assert settings.http_port == 40001
        assert settings.startup_grace == 1.0

    def test_default_data_dir_is_per_user(self):
        path = default_data_dir()

        assert path.name == "warp"
        assert APP_NAME in str(path).lower()

    def test_data_dir_coerced_to_path(self):
        assert ProxySettings(data_dir="some/dir").data_dir == Path("some/dir")

    @pytest.mark.parametrize("port", [0, 65535, -1])
    def test_port_out_of_range(self, port):
        with pytest.raises(ConfigurationError):
            ProxySettings(socks_port=port)

    def test_frozen(self):
        settings = ProxySettings()
        with pytest.raises(AttributeError):
            settings.socks_port = 1


class TestFromEnv:
    """Tests for ProxySettings.from_env()."""

    def test_empty_environment(self):
        settings = ProxySettings.from_env({})

        assert settings.socks_port == 40000
        assert settings.data_dir == default_data_dir()

    def test_environment_values(self, tmp_path):
        settings = ProxySettings.from_env(
            {
                "WARPPROXY_DATA_DIR": str(tmp_path),
                "WARPPROXY_HOST": "0.0.0.0",
                "WARPPROXY_PORT": "1080",
            }
        )

        assert settings.data_dir == tmp_path
        assert settings.host == "0.0.0.0"
        assert settings.socks_port == 1080
        assert settings.http_port == 1081

    def test_blank_values_ignored(self):
        settings = ProxySettings.from_env({"WARPPROXY_PORT": "  ", "WARPPROXY_HOST": ""})

        assert settings.socks_port == 40000
        assert settings.host == "127.0.0.1"

    def test_invalid_port(self):
        with pytest.raises(ConfigurationError, match="WARPPROXY_PORT"):
            ProxySettings.from_env({"WARPPROXY_PORT": "socks"})

    def test_overrides_win(self):
        settings = ProxySettings.from_env({"WARPPROXY_PORT": "1080"}, socks_port=2080)

        assert settings.socks_port == 2080

    def test_none_overrides_ignored(self):
        settings = ProxySettings.from_env(
            {"WARPPROXY_PORT": "1080"}, socks_port=None, host=None
        )

        assert settings.socks_port == 1080


class TestDataLayout:
    """Tests for DataLayout."""

    def test_artifact_names(self, tmp_path):
        layout = DataLayout(tmp_path, target=Target("Linux", "x86_64"))

        assert layout.account_path == tmp_path / "wgcf-account.toml"
        assert layout.profile_path == tmp_path / "wgcf-profile.conf"
        assert layout.proxy_config_path == tmp_path / "wireproxy.conf"
        assert layout.binary_path("wireproxy") == tmp_path / "wireproxy"
        assert layout.scratch_dir("wireproxy") == tmp_path / "wireproxy_extract"

    def test_windows_binary_names(self, tmp_path):
        layout = DataLayout(tmp_path, target=Target("Windows", "AMD64"))

        assert layout.binary_path("wgcf") == tmp_path / "wgcf.exe"
        assert layout.artifacts()["wireproxy"] == tmp_path / "wireproxy.exe"

    def test_ensure_directory(self, layout):
        assert not layout.data_dir.exists()

        layout.ensure_directory()
        layout.ensure_directory()

        assert layout.data_dir.is_dir()

    def test_write_atomic_bytes(self, layout):
        path = layout.write_atomic(layout.proxy_config_path, b"content")

        assert path.read_bytes() == b"content"
        assert not path.with_name("wireproxy.conf.tmp").exists()

    def test_write_atomic_file_object(self, layout):
        path = layout.write_atomic(layout.binary_path("wgcf"), io.BytesIO(b"x" * 20000))

        assert path.stat().st_size == 20000

    def test_write_atomic_failure_leaves_nothing(self, layout):
        class Broken:
            def read(self, size):
                raise OSError("disk full")

        with pytest.raises(OSError):
            layout.write_atomic(layout.binary_path("wgcf"), Broken())

        assert list(layout.data_dir.iterdir()) == []

    def test_delete(self, layout):
        layout.write_atomic(layout.proxy_config_path, b"x")

        assert layout.delete(layout.proxy_config_path) is True
        assert layout.delete(layout.proxy_config_path) is False

    def test_repr(self, layout):
        assert "DataLayout" in repr(layout)
