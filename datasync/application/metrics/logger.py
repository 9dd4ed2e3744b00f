from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from ...infrastructure.metrics import DEFAULT_LOGGER_NAME


class ReopeningTimedRotatingFileHandler(TimedRotatingFileHandler):
    """Reopens the metrics file when it disappears while the process is running."""

    def emit(self, record):
        if self.stream is not None and not Path(self.baseFilename).exists():
            self.stream.close()
            self.stream = self._open()
        super().emit(record)

    def matches(self, target: Path, when: str, backups: int) -> bool:
        return (
            Path(self.baseFilename) == target
            and self.when == when.upper()
            and self.backupCount == backups
        )


def configure_metrics_logger(
    path: str,
    *,
    when: str = "midnight",
    backups: int = 14,
    logger_name: str = DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """
    Route request metrics into a JSON-lines file rotated on `when`.

    The handler is kept when the logger already writes to the same resolved
    file with the same rotation settings; otherwise it is replaced.
    """
    target = Path(path).resolve()
    target.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    handlers = logger.handlers[:]
    if len(handlers) == 1 and isinstance(handlers[0], ReopeningTimedRotatingFileHandler):
        if handlers[0].matches(target, when, backups):
            return logger
    for handler in handlers:
        logger.removeHandler(handler)
        handler.close()

    handler = ReopeningTimedRotatingFileHandler(
        filename=target,
        when=when,
        backupCount=backups,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
