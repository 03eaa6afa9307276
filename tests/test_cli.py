"""Tests for CLI commands."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from cmus_presence.cli import main
from cmus_presence.config import Config
from cmus_presence.discord_rpc import SinkError
from conftest import PLAYING_BLOCK


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def no_config(tmp_path: Path) -> list:
    return ["--config", str(tmp_path / "absent.toml")]


class TestSocketPathCommand:
    def test_prints_resolved_path(self, runner, no_config, monkeypatch):
        monkeypatch.setenv("CMUS_SOCKET", "/run/cmus.sock")
        result = runner.invoke(main, no_config + ["socket-path"])
        assert result.exit_code == 0
        assert result.output.strip() == "/run/cmus.sock"

    def test_socket_option_wins(self, runner, no_config, monkeypatch):
        monkeypatch.setenv("CMUS_SOCKET", "/run/cmus.sock")
        result = runner.invoke(main, no_config + ["--socket", "/tmp/other.sock", "socket-path"])
        assert result.output.strip() == "/tmp/other.sock"


class TestStatusCommand:
    def test_not_running(self, runner, no_config, short_tmp_path):
        sock = short_tmp_path / "none.sock"
        result = runner.invoke(main, no_config + ["--socket", str(sock), "status"])
        assert result.exit_code == 1
        assert "not running" in result.output

    def test_prints_payload(self, runner, no_config, fake_cmus):
        server = fake_cmus([PLAYING_BLOCK])
        result = runner.invoke(main, no_config + ["--socket", str(server.path), "status"])
        assert result.exit_code == 0
        assert "cmus: Playing" in result.output
        assert "state: Artist | Song" in result.output
        assert "end:" in result.output

    def test_unexpected_reply(self, runner, no_config, fake_cmus):
        server = fake_cmus(["status buffering\n\n"])
        result = runner.invoke(main, no_config + ["--socket", str(server.path), "status"])
        assert result.exit_code == 1
        assert "unexpected reply" in result.output


class TestInitConfig:
    def test_writes_file(self, runner, tmp_path):
        path = tmp_path / "cfg" / "config.toml"
        result = runner.invoke(main, ["--config", str(path), "init-config"])
        assert result.exit_code == 0
        assert Config.load(path) == Config()

    def test_refuses_overwrite(self, runner, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("poll_interval_ms = 1000\n")
        result = runner.invoke(main, ["--config", str(path), "init-config"])
        assert result.exit_code != 0
        assert "already exists" in result.output
        assert Config.load(path).poll_interval_ms == 1000


class TestRunCommand:
    @pytest.fixture
    def loop_cls(self):
        with (
            patch("cmus_presence.poll_loop.PollLoop") as loop_cls,
            patch("cmus_presence.discord_rpc.PresenceSink") as sink_cls,
            patch("cmus_presence.log.configure_logging"),
        ):
            loop_cls.sink_cls = sink_cls
            yield loop_cls

    def test_options_override_config(self, runner, no_config, loop_cls):
        result = runner.invoke(main, no_config + ["-m", "2000", "-u", "500", "--strict"])
        assert result.exit_code == 0
        config = loop_cls.call_args.args[2]
        assert config.poll_interval_ms == 2000
        assert config.retry_interval_ms == 500
        assert config.strict is True
        loop_cls.return_value.run.assert_called_once()

    def test_config_file_values_used(self, runner, tmp_path, loop_cls):
        path = tmp_path / "config.toml"
        path.write_text("poll_interval_ms = 4000\nartwork = true\n")
        result = runner.invoke(main, ["--config", str(path), "run"])
        assert result.exit_code == 0
        config = loop_cls.call_args.args[2]
        assert config.poll_interval_ms == 4000
        assert loop_cls.call_args.kwargs["artwork_lookup"] is not None

    def test_sink_error_exits_nonzero(self, runner, no_config, loop_cls):
        loop_cls.return_value.run.side_effect = SinkError("discord gone")
        result = runner.invoke(main, no_config)
        assert result.exit_code == 1

    def test_keyboard_interrupt_clears_presence(self, runner, no_config, loop_cls):
        loop_cls.return_value.run.side_effect = KeyboardInterrupt
        sink = loop_cls.sink_cls.return_value
        sink.started = True
        result = runner.invoke(main, no_config)
        assert result.exit_code == 0
        loop_cls.return_value.stop.assert_called_once()
        sink.clear_activity.assert_called_once()
        sink.close.assert_called_once()

    def test_bad_config_reported(self, runner, tmp_path, loop_cls):
        path = tmp_path / "config.toml"
        path.write_text("poll_interval_ms = 'fast'\n")
        result = runner.invoke(main, ["--config", str(path)])
        assert result.exit_code == 1
        assert "poll_interval_ms" in result.output
        loop_cls.assert_not_called()


def test_interval_warnings():
    from cmus_presence.cli import log_intervals

    with patch("cmus_presence.cli.log") as log:
        log_intervals(Config())
        assert log.warning.call_count == 2

        log.reset_mock()
        log_intervals(Config(poll_interval_ms=1000, retry_interval_ms=2000))
        assert log.info.call_count == 2
        log.warning.assert_called_once()
        assert log.warning.call_args.args[0] == "poll_interval_may_desync"
        assert log.warning.call_args.kwargs["min_stable_ms"] == 3000
