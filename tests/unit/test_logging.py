from __future__ import annotations

import json
from pathlib import Path

import pytest

from pagesmith import logger as package_logger
from pagesmith.logging import configure_logging, get_logger
from pagesmith.settings import Settings


@pytest.fixture(autouse=True)
def _restore_console_logging():
    yield
    configure_logging(settings=Settings(log_json=False, log_level="INFO"), force=True)


def _last_json_line(text: str) -> dict:
    return json.loads(text.strip().splitlines()[-1])


def test_json_record_carries_message_logger_and_fields(capsys) -> None:
    configure_logging(settings=Settings(log_json=True, log_level="INFO"), force=True)

    get_logger("pagesmith.composer").info("Pages extracted", extra={"selection": "2-4, 7", "pages": 4})

    record = _last_json_line(capsys.readouterr().err)
    assert record["message"] == "Pages extracted"
    assert record["logger"] == "pagesmith.composer"
    assert record["level"] == "info"
    assert record["selection"] == "2-4, 7"
    assert record["pages"] == 4
    assert "event" not in record
    assert "extra" not in record


def test_extra_fields_do_not_override_record_keys(capsys) -> None:
    configure_logging(settings=Settings(log_json=True, log_level="INFO"), force=True)

    get_logger("pagesmith.partition").info("Partition complete", extra={"level": "bogus", "parts": 3})

    record = _last_json_line(capsys.readouterr().err)
    assert record["level"] == "info"
    assert record["parts"] == 3


def test_level_filters_lower_records(capsys) -> None:
    configure_logging(settings=Settings(log_json=True, log_level="WARNING"), force=True)
    logger = get_logger("pagesmith.bookmarks")

    logger.info("Outline read")
    logger.warning("Bookmark extraction timed out", extra={"timeout_seconds": 0.5})

    lines = capsys.readouterr().err.strip().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["message"] == "Bookmark extraction timed out"


def test_console_renderer_writes_to_stderr(capsys) -> None:
    configure_logging(settings=Settings(log_json=False, log_level="INFO"), force=True)

    get_logger("pagesmith.cli").info("Command completed")

    assert "Command completed" in capsys.readouterr().err


def test_log_file_receives_records(tmp_path: Path) -> None:
    log_file = tmp_path / "pagesmith.log"
    configure_logging(settings=Settings(log_json=True, log_level="INFO", log_file=str(log_file)), force=True)

    get_logger("pagesmith.output").info("Output written", extra={"files": 2})

    record = _last_json_line(log_file.read_text(encoding="utf-8"))
    assert record["message"] == "Output written"
    assert record["files"] == 2


def test_configure_without_force_keeps_existing_setup(mocker) -> None:
    configure_logging(settings=Settings(log_json=False, log_level="INFO"), force=True)
    configure = mocker.patch("pagesmith.logging.structlog.configure")

    configure_logging(settings=Settings(log_json=True, log_level="DEBUG"))

    configure.assert_not_called()


def test_package_logger_created_on_import() -> None:
    assert callable(getattr(package_logger, "info", None))
