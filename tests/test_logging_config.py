import logging

import pytest

from log_config.logging_config import setup_logging


@pytest.fixture
def restore_root_logging():
    handlers = logging.root.handlers[:]
    level = logging.root.level
    yield
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)
        h.close()
    for h in handlers:
        logging.root.addHandler(h)
    logging.root.setLevel(level)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True


def test_logs_to_configured_dir(tmp_path, monkeypatch, restore_root_logging):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    log_file = setup_logging()

    assert log_file == tmp_path / "logs" / "app.log"
    logging.getLogger("analytics").info("summary computed")
    for h in logging.root.handlers:
        h.flush()
    assert "summary computed" in log_file.read_text(encoding="utf-8")


def test_uvicorn_shares_handlers(tmp_path, monkeypatch, restore_root_logging):
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    setup_logging()
    uvicorn_logger = logging.getLogger("uvicorn.access")
    assert uvicorn_logger.handlers == logging.root.handlers
    assert uvicorn_logger.propagate is False
