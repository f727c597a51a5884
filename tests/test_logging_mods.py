# tests/test_logging_mods.py
import importlib
import logging
import logging as std_logging

from config import settings

import utils.logging as logging_utils


def test_setup_logging_file_error(monkeypatch, caplog):
    caplog.set_level(logging.ERROR)
    root_logger = std_logging.getLogger()

    class Handlers(list):
        def clear(self):
            pass

    root_logger.handlers = Handlers([caplog.handler])

    logging_utils.structlog.configure(
        logger_factory=logging_utils.structlog.stdlib.LoggerFactory()
    )
    importlib.reload(logging_utils)

    def raise_handler(*_a, **_k):
        raise OSError("fail")

    monkeypatch.setattr(std_logging.handlers, "RotatingFileHandler", raise_handler)
    monkeypatch.setattr(settings, "LOG_FILE", "temp.log")

    logging_utils.setup_logging()

    assert any(
        "Error setting up file logger" in record.message for record in caplog.records
    )


def test_setup_logging_writes_file(monkeypatch, tmp_path):
    log_path = tmp_path / "logs" / "run.log"
    monkeypatch.setattr(settings, "LOG_FILE", str(log_path))
    monkeypatch.setattr(settings, "ENABLE_RICH_PROGRESS", False)
    std_logging.getLogger().handlers = []

    logging_utils.setup_logging("warning")

    root_logger = std_logging.getLogger()
    assert root_logger.level == logging.WARNING
    assert any(
        isinstance(h, std_logging.handlers.RotatingFileHandler)
        for h in root_logger.handlers
    )
    assert log_path.parent.is_dir()
    assert std_logging.getLogger("httpx").level == logging.WARNING
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
