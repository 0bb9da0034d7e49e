import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from common.core_utils import SymbolFormatter, resolve_log_level, setup_logging


def _record(level, msg):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_setup_logging_with_file_and_console(mocker):
    """Test setup_logging when both log_file and log_to_console are provided."""
    mock_file_handler = mocker.patch("logging.FileHandler")
    mock_stream_handler = mocker.patch("logging.StreamHandler")
    mock_formatter = mocker.patch("common.core_utils.SymbolFormatter")

    mock_root_logger = MagicMock()
    mocker.patch("logging.getLogger", return_value=mock_root_logger)
    mock_root_logger.handlers = []

    log_file_path = str(Path("logs/test.log"))
    mocker.patch("pathlib.Path.mkdir")

    setup_logging(log_file=log_file_path, log_to_console=True)

    mock_file_handler.assert_called_once_with(Path(log_file_path), mode="a")
    mock_stream_handler.assert_called_once_with(sys.stdout)
    assert mock_formatter.call_count == 1
    assert mock_root_logger.addHandler.call_count == 2


def test_setup_logging_without_handlers(mocker):
    """Test setup_logging falls back to a console handler."""
    mock_stream_handler = mocker.patch("logging.StreamHandler")
    mock_formatter = mocker.patch("common.core_utils.SymbolFormatter")

    mock_root_logger = MagicMock()
    mocker.patch("logging.getLogger", return_value=mock_root_logger)
    mock_root_logger.handlers = []

    setup_logging(log_level=logging.ERROR, log_to_console=False, log_file=None)

    mock_stream_handler.assert_called_once_with(sys.stdout)
    assert mock_formatter.call_count == 1
    assert mock_root_logger.addHandler.call_count == 1
    mock_root_logger.setLevel.assert_called_once_with(logging.INFO)


def test_setup_logging_with_custom_format(mocker):
    """Test setup_logging with a custom log format."""
    mock_formatter = mocker.patch("common.core_utils.SymbolFormatter")

    mock_root_logger = MagicMock()
    mocker.patch("logging.getLogger", return_value=mock_root_logger)
    mock_root_logger.handlers = []

    custom_format = "{log_prefix}%(asctime)s - %(levelname)s - %(message)s"
    custom_prefix = "[TestPrefix]"

    setup_logging(log_format_str=custom_format, log_prefix=custom_prefix)

    expected_format = custom_format.format(log_prefix=custom_prefix + " ")
    mock_formatter.assert_called_once_with(
        fmt=expected_format,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def test_setup_logging_passes_symbols(mocker):
    mock_formatter = mocker.patch("common.core_utils.SymbolFormatter")
    mocker.patch("logging.getLogger", return_value=MagicMock(handlers=[]))

    setup_logging(log_prefix="[GTFS-EXTRACT]", symbols={"info": "i"})

    kwargs = mock_formatter.call_args.kwargs
    assert kwargs["symbols"] == {"info": "i"}
    assert kwargs["fmt"].startswith("[GTFS-EXTRACT] ")


def test_setup_logging_with_default_level(mocker):
    """Test setup_logging with default logging level."""
    mock_root_logger = MagicMock()
    mocker.patch("logging.getLogger", return_value=mock_root_logger)
    mock_root_logger.handlers = []

    setup_logging()

    mock_root_logger.setLevel.assert_called_once_with(logging.INFO)


def test_setup_logging_warning_on_file_handler_failure(capsys, mocker):
    """Test setup_logging gracefully handles file handler creation failure."""
    mocker.patch(
        "logging.FileHandler", side_effect=Exception("An error occurred")
    )

    mock_root_logger = MagicMock()
    mocker.patch("logging.getLogger", return_value=mock_root_logger)
    mock_root_logger.handlers = []
    mocker.patch("pathlib.Path.mkdir")

    setup_logging(log_file="invalid/path.log")
    captured = capsys.readouterr()

    assert (
        "Warning: Could not create file handler for log file" in captured.err
    )


def test_symbol_formatter():
    """Test that the SymbolFormatter adds the correct symbols."""
    formatter = SymbolFormatter(fmt="%(symbol)s %(message)s")

    assert "🐛" in formatter.format(_record(logging.DEBUG, "Debug message"))
    assert "ℹ️" in formatter.format(_record(logging.INFO, "Info message"))
    assert "⚠️" in formatter.format(_record(logging.WARNING, "Warning message"))
    assert "❌" in formatter.format(_record(logging.ERROR, "Error message"))
    assert "🔥" in formatter.format(_record(logging.CRITICAL, "Critical message"))


def test_symbol_formatter_custom_symbols():
    formatter = SymbolFormatter(fmt="%(symbol)s %(message)s", symbols={"warning": "!"})
    assert formatter.format(_record(logging.WARNING, "careful")) == "! careful"
    assert formatter.format(_record(5, "trace")) == " trace"
    assert formatter.format(_record(logging.DEBUG, "x")) == "🐛 x"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        ("10", logging.DEBUG),
        (logging.ERROR, logging.ERROR),
        (None, logging.INFO),
    ],
)
def test_resolve_log_level(value, expected):
    assert resolve_log_level(value) == expected


def test_resolve_unknown_log_level(capsys):
    assert resolve_log_level("chatty") == logging.INFO
    assert "Unknown log level" in capsys.readouterr().err
