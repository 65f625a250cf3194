"""Append-only sync log: one ``[timestamp] [LEVEL] message`` line per event step."""

import logging
from pathlib import Path
from typing import Union

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LINE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVELS = {
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "SUCCESS": SUCCESS,
}


class SyncLogHandler(logging.FileHandler):
    """File handler for the sync log. Write failures are dropped.

    With ``delay=True`` the file is opened on the first ``emit``, outside the
    try block of ``FileHandler.emit``, so an unwritable path has to be caught
    here.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            super().emit(record)
        except Exception:
            self.handleError(record)

    def handleError(self, record: logging.LogRecord) -> None:
        return None


class SyncLog:
    """Leveled line logger writing to a single file sink.

    Only one sink is attached per process; constructing a new ``SyncLog``
    replaces the previous one.
    """

    def __init__(self, path: Union[str, Path], logger_name: str = "memsync.sync"):
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logging.getLogger(logger_name).warning("sync log directory unavailable: %s", e)
        self._logger = logging.getLogger(logger_name)
        self._logger.setLevel(logging.INFO)
        for h in self._logger.handlers[:]:
            if isinstance(h, SyncLogHandler):
                self._logger.removeHandler(h)
                h.close()
        self._handler = SyncLogHandler(self.path, encoding="utf-8", delay=True)
        self._handler.setFormatter(logging.Formatter(LINE_FORMAT, datefmt=DATE_FORMAT))
        self._logger.addHandler(self._handler)

    def log(self, level: str, message: str) -> None:
        self._logger.log(LEVELS.get(level.upper(), logging.INFO), message)

    def info(self, message: str) -> None:
        self.log("INFO", message)

    def warning(self, message: str) -> None:
        self.log("WARNING", message)

    def error(self, message: str) -> None:
        self.log("ERROR", message)

    def success(self, message: str) -> None:
        self.log("SUCCESS", message)

    def close(self) -> None:
        self._logger.removeHandler(self._handler)
        self._handler.close()
