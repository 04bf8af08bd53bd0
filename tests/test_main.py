"""Tests for the command line entry point."""

import asyncio
import os
import signal
from unittest.mock import AsyncMock, Mock, patch

import pytest

from wis2_subscriber import __main__ as entry
from wis2_subscriber.core.errors import ConfigError

REQUIRED = ["--server", "tcp://broker.example.org", "--topic", "cache/a/wis2/#", "--log-to-stdout"]


@pytest.fixture(autouse=True)
def quiet_entry_point(monkeypatch):
    for name in list(os.environ):
        if name.startswith("WIS2_"):
            monkeypatch.delenv(name)
    with patch.object(entry, "load_dotenv"), patch.object(entry, "setup_logging") as setup_logging:
        yield setup_logging
    asyncio.set_event_loop(None)


class TestMain:

    def test_missing_server_exits_with_config_error(self, capsys):
        assert entry.main(["--topic", "t", "--log-to-stdout"]) == 2
        assert "server is required" in capsys.readouterr().err

    def test_returns_runner_exit_code(self):
        with patch.object(entry, "run_subscriber", AsyncMock(return_value=1)) as run, patch.object(
            entry, "setup_signal_handlers"
        ):
            assert entry.main(REQUIRED) == 1

        config, shutdown_event = run.await_args.args
        assert config.server == "tcp://broker.example.org"
        assert isinstance(shutdown_event, asyncio.Event)

    def test_runtime_config_error(self, capsys):
        failing = AsyncMock(side_effect=ConfigError("Download path is not a directory: x"))
        with patch.object(entry, "run_subscriber", failing), patch.object(entry, "setup_signal_handlers"):
            assert entry.main(REQUIRED) == 2

        assert "Download path is not a directory" in capsys.readouterr().err

    def test_logging_configured_from_flags(self, quiet_entry_point, tmp_path):
        entry.main(["--topic", "t", "--log-dir", str(tmp_path), "--no-json-logs", "--clientid", "me"])

        kwargs = quiet_entry_point.call_args.kwargs
        assert kwargs["log_dir"] == tmp_path
        assert kwargs["json_format"] is False
        assert kwargs["client_id"] == "me"


class TestSignalHandlers:

    def test_first_signal_sets_event_second_cancels(self):
        loop = Mock()
        shutdown_event = asyncio.Event()
        entry.setup_signal_handlers(loop, shutdown_event)

        handlers = {call.args[0]: call.args[1] for call in loop.add_signal_handler.call_args_list}
        assert set(handlers) == {signal.SIGINT, signal.SIGTERM}

        task = Mock()
        with patch.object(entry.asyncio, "all_tasks", return_value={task}):
            handlers[signal.SIGTERM]()
            assert shutdown_event.is_set()
            task.cancel.assert_not_called()

            handlers[signal.SIGINT]()
            task.cancel.assert_called_once()
