"""
Lightweight logger shared by every pyspherefit module.

Messages go to the console, to a file, or to both, each destination with its
own minimum level. Modules never hold on to a logger instance; they call
``get_logger()`` when they need one so ``set_logger()`` applies everywhere.
"""
import os
import sys
import time
from typing import Optional, Union
from enum import Enum


class LogLevel(Enum):
    """Log levels for controlling verbosity."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def parse(cls, level: Union[str, "LogLevel"]) -> "LogLevel":
        """Accept either a LogLevel or its (case-insensitive) name."""
        if isinstance(level, LogLevel):
            return level
        try:
            return cls[str(level).upper()]
        except KeyError:
            raise ValueError(f"unknown log level: {level!r}")


class SphereLogger:
    """
    Console/file logger with independent thresholds per destination.
    """
    MODES = ('console', 'file', 'both')

    def __init__(
        self,
        mode: str = 'console',
        log_file: Optional[str] = None,
        console_level: Union[str, LogLevel] = LogLevel.INFO,
        file_level: Union[str, LogLevel] = LogLevel.DEBUG,
        include_timestamp: bool = True,
        name: str = 'pyspherefit',
        truncate: bool = True
    ):
        """
        Initialize the logger.

        Args:
            mode: 'console', 'file', or 'both'
            log_file: Path to log file (required if mode is 'file' or 'both')
            console_level: Minimum level printed to the console
            file_level: Minimum level written to the log file
            include_timestamp: Prefix every line with the wall-clock time
            name: Tag written in front of every message
            truncate: Empty the log file when the logger is created
        """
        if mode not in self.MODES:
            raise ValueError("mode must be 'console', 'file', or 'both'")
        if mode in ('file', 'both') and not log_file:
            raise ValueError("log_file must be provided when mode is 'file' or 'both'")

        self.mode = mode
        self.log_file = log_file
        self.console_level = LogLevel.parse(console_level)
        self.file_level = LogLevel.parse(file_level)
        self.include_timestamp = include_timestamp
        self.name = name

        if self.log_file:
            log_dir = os.path.dirname(self.log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            if truncate:
                with open(self.log_file, 'w'):
                    pass

    @property
    def _to_console(self) -> bool:
        return self.mode in ('console', 'both')

    @property
    def _to_file(self) -> bool:
        return self.mode in ('file', 'both') and bool(self.log_file)

    def isEnabledFor(self, level: Union[str, LogLevel]) -> bool:
        """
        Check whether a message of ``level`` would reach any destination.
        Mirrors the method of the same name on ``logging.Logger`` so callers
        can guard expensive message formatting.
        """
        level = LogLevel.parse(level)
        console_enabled = self._to_console and level.value >= self.console_level.value
        file_enabled = self._to_file and level.value >= self.file_level.value
        return console_enabled or file_enabled

    def _format_message(self, message: str, level: LogLevel) -> str:
        timestamp = f"[{time.strftime('%Y-%m-%d %H:%M:%S')}] " if self.include_timestamp else ""
        return f"{timestamp}[{self.name}] [{level.name}] {message}"

    def log(self, message: str, level: Union[str, LogLevel] = LogLevel.INFO) -> None:
        """
        Log a message with the specified level.

        Args:
            message: The message to log
            level: The log level (default: INFO)
        """
        level = LogLevel.parse(level)
        if not self.isEnabledFor(level):
            return
        formatted = self._format_message(message, level)
        if self._to_console and level.value >= self.console_level.value:
            stream = sys.stderr if level.value >= LogLevel.WARNING.value else sys.stdout
            print(formatted, file=stream)
        if self._to_file and level.value >= self.file_level.value:
            with open(self.log_file, 'a') as f:
                f.write(formatted + '\n')

    def debug(self, message: str) -> None:
        self.log(message, LogLevel.DEBUG)

    def info(self, message: str) -> None:
        self.log(message, LogLevel.INFO)

    def warning(self, message: str) -> None:
        self.log(message, LogLevel.WARNING)

    def error(self, message: str) -> None:
        self.log(message, LogLevel.ERROR)

    def critical(self, message: str) -> None:
        self.log(message, LogLevel.CRITICAL)

    def __call__(self, message: str, level: Union[str, LogLevel] = LogLevel.INFO) -> None:
        self.log(message, level)


DEFAULT_LOGGER = SphereLogger(mode='console')


def get_logger(name: Optional[str] = None) -> SphereLogger:
    """
    Return the package-wide logger.

    Args:
        name: Ignored; accepted so call sites read like ``logging.getLogger``
    """
    return DEFAULT_LOGGER


def set_logger(logger: Optional[SphereLogger]) -> None:
    """
    Replace the package-wide logger.

    Args:
        logger: A SphereLogger instance, or None to restore the console default
    """
    global DEFAULT_LOGGER
    if logger is None:
        DEFAULT_LOGGER = SphereLogger(mode='console')
    elif not isinstance(logger, SphereLogger):
        raise ValueError("Logger must be an instance of SphereLogger")
    else:
        DEFAULT_LOGGER = logger
