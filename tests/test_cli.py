"""
Unit tests for CLI module.

This module contains tests for command-line interface commands,
verifying correct parsing and output formatting.
"""

from unittest.mock import patch

import pytest

from warpproxy.cli.commands import (
    cmd_provision,
    cmd_render,
    cmd_reset,
    cmd_run,
    create_parser,
    format_info,
    main,
)
from warpproxy.facade import EnableResult, ProxyFacade, ProxyStatus


@pytest.fixture
def facade(settings, provisioned_layout) -> ProxyFacade:
    return ProxyFacade(settings=settings, layout=provisioned_layout, register_cleanup=False)


class TestCreateParser:
    """Tests for create_parser()."""

    def test_creates_parser(self):
        parser = create_parser()
        assert parser.prog == "warpproxy"

    def test_has_version_argument(self):
        """Test that --version is available."""
        parser = create_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["--version"])

    def test_global_options(self):
        args = create_parser().parse_args(
            ["-v", "--data-dir", "/tmp/warp", "--host", "0.0.0.0", "-p", "1080", "run"]
        )

        assert args.verbose is True
        assert args.data_dir == "/tmp/warp"
        assert args.host == "0.0.0.0"
        assert args.port == 1080
        assert args.command == "run"

    def test_defaults_are_none(self):
        """Test unset options leave environment values in charge."""
        args = create_parser().parse_args(["info"])

        assert args.data_dir is None
        assert args.host is None
        assert args.port is None

    def test_reset_profile_flag(self):
        args = create_parser().parse_args(["reset", "--profile"])
        assert args.profile is True


class TestFormatInfo:
    """Tests for format_info()."""

    def test_lists_artifacts(self, facade):
        output = format_info(facade)

        assert str(facade.layout.data_dir) in output
        assert "127.0.0.1:41000" in output
        assert "127.0.0.1:41001" in output
        assert "✓ wgcf" in output
        assert "✓ proxy config" in output

    def test_missing_artifacts(self, facade):
        facade.layout.delete(facade.layout.account_path)

        assert "✗ account" in format_info(facade)


class TestCmdRender:
    """Tests for cmd_render()."""

    def test_prints_config(self, facade, capsys):
        assert cmd_render(facade) == 0

        out = capsys.readouterr().out
        assert "[Socks5]" in out
        assert "BindAddress = 127.0.0.1:41000" in out

    def test_does_not_write(self, facade):
        facade.layout.delete(facade.layout.proxy_config_path)

        cmd_render(facade)

        assert not facade.layout.proxy_config_path.exists()

    def test_missing_profile(self, facade, capsys):
        facade.layout.delete(facade.layout.profile_path)

        assert cmd_render(facade) == 1
        assert "no WireGuard profile" in capsys.readouterr().err

    def test_invalid_profile(self, facade, capsys):
        facade.layout.profile_path.write_text("[Peer]\n")

        assert cmd_render(facade) == 1
        assert "Error:" in capsys.readouterr().err


class TestCmdReset:
    """Tests for cmd_reset()."""

    def test_deletes_proxy_config(self, facade, capsys):
        assert cmd_reset(facade) == 0

        assert not facade.layout.proxy_config_path.exists()
        assert facade.layout.profile_path.exists()
        assert "Deleted" in capsys.readouterr().out

    def test_deletes_profile_too(self, facade):
        cmd_reset(facade, include_profile=True)

        assert not facade.layout.profile_path.exists()
        assert facade.layout.account_path.exists()

    def test_nothing_to_delete(self, facade, capsys):
        cmd_reset(facade)

        assert cmd_reset(facade) == 0
        assert "Not present" in capsys.readouterr().out


class TestCmdProvisionAndRun:
    """Tests for commands driving the facade."""

    def test_provision_success(self, facade, capsys):
        with patch.object(facade, "provision", return_value=EnableResult(success=True)):
            assert cmd_provision(facade) == 0

        assert "Ready" in capsys.readouterr().out

    def test_provision_failure(self, facade, capsys):
        with patch.object(
            facade, "provision", return_value=EnableResult(success=False, error="offline")
        ):
            assert cmd_provision(facade) == 1

        assert "Error: offline" in capsys.readouterr().err

    def test_run_failure(self, facade, capsys):
        with patch.object(
            facade, "enable", return_value=EnableResult(success=False, error="no asset")
        ):
            assert cmd_run(facade) == 1

        assert "Error: no asset" in capsys.readouterr().err

    def test_run_until_interrupted(self, facade, capsys):
        enabled = EnableResult(success=True, host="127.0.0.1", socks_port=41000, http_port=41001)
        with patch.object(facade, "enable", return_value=enabled), patch.object(
            facade, "is_enabled", return_value=True
        ), patch.object(facade, "disable") as disable, patch(
            "warpproxy.cli.commands.time.sleep", side_effect=KeyboardInterrupt
        ):
            assert cmd_run(facade) == 0

        disable.assert_called_once()
        out = capsys.readouterr().out
        assert "socks5://127.0.0.1:41000" in out
        assert "http://127.0.0.1:41001" in out

    def test_run_proxy_exits(self, facade, capsys):
        enabled = EnableResult(success=True, host="127.0.0.1", socks_port=41000, http_port=41001)
        status = ProxyStatus(
            enabled=False,
            host="127.0.0.1",
            socks_port=41000,
            http_port=41001,
            error="wireproxy exited with code 1",
        )
        with patch.object(facade, "enable", return_value=enabled), patch.object(
            facade, "is_enabled", return_value=False
        ), patch.object(facade, "status", return_value=status):
            assert cmd_run(facade) == 1

        assert "exited with code 1" in capsys.readouterr().err


class TestMain:
    """Tests for main()."""

    def test_no_command_shows_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_version_flag(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])

        assert excinfo.value.code == 0
        assert "warpproxy" in capsys.readouterr().out

    def test_info(self, tmp_path, capsys):
        assert main(["--data-dir", str(tmp_path), "info"]) == 0
        assert str(tmp_path) in capsys.readouterr().out

    def test_invalid_port(self, tmp_path, capsys):
        assert main(["--data-dir", str(tmp_path), "--port", "70000", "info"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_env_port(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("WARPPROXY_PORT", "abc")

        assert main(["--data-dir", str(tmp_path), "info"]) == 1

    def test_reset_dispatch(self, tmp_path, capsys):
        (tmp_path / "wireproxy.conf").write_text("x")

        assert main(["--data-dir", str(tmp_path), "reset"]) == 0
        assert not (tmp_path / "wireproxy.conf").exists()

    @patch("warpproxy.cli.commands.ProxyFacade")
    def test_provision_dispatch(self, mock_facade_class, tmp_path):
        mock_facade_class.return_value.provision.return_value = EnableResult(success=True)

        assert main(["--data-dir", str(tmp_path), "provision"]) == 0
        mock_facade_class.return_value.provision.assert_called_once()
