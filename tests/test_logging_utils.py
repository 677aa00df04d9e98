from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from data_claims import logging_utils


def _settings(log_file: str | None = None, level: str = "INFO") -> SimpleNamespace:
    return SimpleNamespace(logging=SimpleNamespace(level=level, file=log_file))


def _record(msg: str, *args: object) -> logging.LogRecord:
    return logging.LogRecord("data_claims.test", logging.INFO, __file__, 1, msg, args, None)


def test_redactor_masks_phone_numbers_in_arguments() -> None:
    record = _record("Claim body: %s", "phoneNumber=+94 (555) 123-4567")

    assert logging_utils.PhoneNumberRedactor().filter(record) is True
    assert "123-4567" not in record.getMessage()
    assert logging_utils.REDACTED_PHONE in record.getMessage()


def test_redactor_leaves_other_messages_alone() -> None:
    record = _record("Stored data claim %s (tier=%s)", "abc", "5 GB")

    logging_utils.PhoneNumberRedactor().filter(record)

    assert record.args == ("abc", "5 GB")
    assert record.getMessage() == "Stored data claim abc (tier=5 GB)"


@patch("data_claims.logging_utils.load_settings")
@patch("data_claims.logging_utils.logging.basicConfig")
def test_configure_logging_installs_redacting_stream_handler(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(level="debug")

    logging_utils.configure_logging()

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["force"] is True
    assert kwargs["level"] == logging.DEBUG
    (handler,) = kwargs["handlers"]
    assert any(isinstance(f, logging_utils.PhoneNumberRedactor) for f in handler.filters)
    assert logging.getLogger("pymongo").level == logging.WARNING


@patch("data_claims.logging_utils.load_settings")
@patch("data_claims.logging_utils.logging.basicConfig")
def test_configure_logging_unknown_level_falls_back_to_info(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(level="chatty")

    logging_utils.configure_logging()

    assert mock_basic_config.call_args.kwargs["level"] == logging.INFO


@patch("data_claims.logging_utils.load_settings")
@patch("data_claims.logging_utils.logging.basicConfig")
def test_file_handler_redacts_too(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    log_file = tmp_path / "logs" / "claims.log"
    mock_load_settings.return_value = _settings(str(log_file))

    logging_utils.configure_logging()

    handlers = mock_basic_config.call_args.kwargs["handlers"]
    assert len(handlers) == 2
    file_handler = handlers[1]
    file_handler.handle(_record("Rejected %s", "+94 (555) 123-4567"))
    file_handler.close()
    written = log_file.read_text()
    assert "Rejected" in written
    assert "123-4567" not in written


@patch("data_claims.logging_utils.load_settings")
@patch("data_claims.logging_utils.logging.basicConfig")
@patch("data_claims.logging_utils.logging.FileHandler", side_effect=OSError("permission denied"))
@patch("data_claims.logging_utils._logger")
def test_unwritable_log_file_keeps_stream_handler(
    mock_logger: MagicMock,
    _mock_file_handler: MagicMock,
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    mock_load_settings.return_value = _settings(str(tmp_path / "app.log"))

    logging_utils.configure_logging()

    mock_logger.warning.assert_called_once()
    assert len(mock_basic_config.call_args.kwargs["handlers"]) == 1


def test_get_logger_configures_once(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging_utils, "_configured", False)
    calls = []

    def fake_configure() -> None:
        calls.append(1)
        monkeypatch.setattr(logging_utils, "_configured", True)

    monkeypatch.setattr(logging_utils, "configure_logging", fake_configure)

    logger = logging_utils.get_logger("data_claims.server")
    logging_utils.get_logger("data_claims.server")

    assert logger.name == "data_claims.server"
    assert len(calls) == 1
