"""
Logging setup for the Ride Duel backend.

``setup_logging`` runs once per process, from the CLI group or the WSGI
factory. It puts three handlers on the root logger: the console, a rotating
``ride_duel.log`` and a rotating ``ride_duel_errors.log`` that only takes
ERROR and above.
"""

import logging
import logging.handlers
import time
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .config import LoggingConfig

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'

APP_LOG = 'ride_duel.log'
ERROR_LOG = 'ride_duel_errors.log'
HANDLER_PREFIX = 'ride_duel.'

# one INFO line per connection or request
NOISY_LOGGERS = ('aiohttp', 'aiohttp.access', 'mysql.connector', 'werkzeug')


def _file_handler(config: 'LoggingConfig', filename: str, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=Path(config.directory) / filename,
        maxBytes=config.max_file_size,
        backupCount=config.backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    handler.set_name(HANDLER_PREFIX + filename)
    return handler


def build_handlers(config: 'LoggingConfig') -> List[logging.Handler]:
    """Console, application log and error log handlers for ``config``."""
    console = logging.StreamHandler()
    console.setLevel(config.level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    console.set_name(HANDLER_PREFIX + 'console')

    return [
        console,
        _file_handler(config, APP_LOG, config.level),
        _file_handler(config, ERROR_LOG, logging.ERROR),
    ]


def setup_logging(config: 'LoggingConfig') -> logging.Logger:
    """
    Install the Ride Duel handlers on the root logger.

    Handlers from an earlier call are closed and replaced. Handlers that
    something else attached (a WSGI server, pytest) are left in place.

    Args:
        config: Level, directory and rotation settings

    Returns:
        The root logger
    """
    log_dir = Path(config.directory)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if (handler.get_name() or '').startswith(HANDLER_PREFIX):
            root.removeHandler(handler)
            handler.close()

    root.setLevel(config.level)
    for handler in build_handlers(config):
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger(__name__).info(f"Logging at {config.level} to {log_dir.absolute()}")
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class PerformanceTimer:
    """Context manager that logs how long a block took."""

    def __init__(self, operation_name: str, logger: Optional[logging.Logger] = None):
        """
        Args:
            operation_name: Label used in the log line
            logger: Logger to write to (defaults to ``ride_duel.performance``)
        """
        self.operation_name = operation_name
        self.logger = logger or logging.getLogger('ride_duel.performance')
        self.elapsed_ms: Optional[float] = None
        self._start: Optional[float] = None

    def __enter__(self) -> 'PerformanceTimer':
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000

        if exc_type is None:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
        else:
            self.logger.warning(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms - "
                                f"{exc_type.__name__}: {exc_val}")
