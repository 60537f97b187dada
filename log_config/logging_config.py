from pathlib import Path
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

# Project root -> .../call-analytics
ROOT = Path(__file__).resolve().parent.parent

FMT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def _log_file() -> Path:
    log_dir = Path(os.getenv("LOG_DIR") or ROOT / "logging")
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "app.log"


def setup_logging(level: int = logging.INFO) -> Path:
    # Clear any existing handlers (prevents duplicates with --reload)
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)

    log_file = _log_file()
    file_h = RotatingFileHandler(
        log_file, maxBytes=50*1024*1024, backupCount=5, encoding="utf-8"
    )
    file_h.setFormatter(logging.Formatter(FMT))

    console_h = logging.StreamHandler(sys.stdout)
    console_h.setFormatter(logging.Formatter(FMT))

    logging.basicConfig(level=level, handlers=[file_h, console_h])

    # Make uvicorn logs go to the same handlers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        l = logging.getLogger(name)
        l.setLevel(level)
        l.handlers = [file_h, console_h]
        l.propagate = False

    logging.getLogger("log_setup").info(f"Logging to: {log_file}")
    return log_file
