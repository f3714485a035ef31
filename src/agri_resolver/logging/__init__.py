from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from agri_resolver.config.models import FileLoggingSettings, LoggingSettings

_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_level(name: str) -> int:
    level = logging.getLevelNamesMapping().get(name.strip().upper())
    if level is None:
        raise ValueError(f"Invalid logging level: {name}")
    return level


def _file_handler(settings: FileLoggingSettings, formatter: logging.Formatter) -> Optional[logging.Handler]:
    file_path = settings.path.strip()
    if not file_path:
        return None

    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        interval=1,
        backupCount=settings.rotation.backup_count,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setFormatter(formatter)
    return handler


def init_logging(settings: LoggingSettings) -> None:
    """
    Configure the root logger for the resolver.

    Records go to stderr and, when `file.path` is set, to a file rotated at
    midnight. `loggers` maps logger names to their own levels, e.g.
    `agri_resolver.resolver: DEBUG` to see every source attempt. Handlers
    carry no level of their own so those overrides reach them. Calling it
    again replaces earlier handlers.
    """
    level = parse_level(settings.level)
    overrides = {name: parse_level(value) for name, value in settings.loggers.items()}

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    for name, override in overrides.items():
        logging.getLogger(name).setLevel(override)

    try:
        file_handler = _file_handler(settings.file, formatter)
    except OSError:
        root_logger.error("File logging handler failed to initialize. path=%s", settings.file.path, exc_info=True)
        return
    if file_handler is not None:
        root_logger.addHandler(file_handler)


__all__ = ["init_logging", "parse_level"]
