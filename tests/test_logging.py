"""
Tests for root logger setup across repeated runs in one process.
"""

import logging
from pathlib import Path

import pytest

from formula_installer.logging_utils import (
    CONSOLE_HANDLER_NAME,
    FALLBACK_LOG_NAME,
    FILE_HANDLER_NAME,
    configure_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for h in list(root.handlers):
        if h not in saved_handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(saved_level)


def _ours(name):
    return [h for h in logging.getLogger().handlers if h.get_name() == name]


def _flush():
    for h in logging.getLogger().handlers:
        h.flush()


class TestConfigureLogging:
    def test_second_call_switches_log_file(self, tmp_path):
        first = tmp_path / "one" / "install.log"
        second = tmp_path / "two" / "install.log"

        assert configure_logging(str(first)) == str(first)
        logging.getLogger("formula_installer.test").info("first run")
        assert configure_logging(str(second)) == str(second)
        logging.getLogger("formula_installer.test").info("second run")
        _flush()

        assert "first run" in first.read_text()
        assert "second run" not in first.read_text()
        assert "second run" in second.read_text()
        assert len(_ours(FILE_HANDLER_NAME)) == 1

    def test_same_path_keeps_handler(self, tmp_path):
        log = str(tmp_path / "install.log")
        configure_logging(log)
        handler = _ours(FILE_HANDLER_NAME)[0]
        configure_logging(log)
        assert _ours(FILE_HANDLER_NAME) == [handler]
        assert len(_ours(CONSOLE_HANDLER_NAME)) == 1

    def test_verbose_only_changes_console(self, tmp_path):
        log = str(tmp_path / "install.log")
        configure_logging(log, level=logging.INFO)
        assert _ours(CONSOLE_HANDLER_NAME)[0].level == logging.INFO

        configure_logging(log, level=logging.DEBUG)
        assert _ours(CONSOLE_HANDLER_NAME)[0].level == logging.DEBUG
        assert _ours(FILE_HANDLER_NAME)[0].level == logging.DEBUG

    def test_file_gets_debug_when_console_is_quiet(self, tmp_path):
        log = tmp_path / "install.log"
        configure_logging(str(log), level=logging.WARNING)
        logging.getLogger("formula_installer.test").debug("decision detail")
        _flush()
        assert "decision detail" in log.read_text()

    def test_console_can_be_dropped(self, tmp_path):
        log = str(tmp_path / "install.log")
        configure_logging(log)
        configure_logging(log, also_console=False)
        assert _ours(CONSOLE_HANDLER_NAME) == []

    def test_unwritable_path_falls_back_to_cwd(self, tmp_path, monkeypatch):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        monkeypatch.chdir(tmp_path)
        actual = configure_logging(str(blocker / "install.log"))
        assert Path(actual).name == FALLBACK_LOG_NAME
        assert Path(actual).parent.resolve() == tmp_path.resolve()
