"""
Logging System - Centralized logging management.

Provides colored console logging and file logging with log rotation.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import colorlog

from GuildPackBot.kernel.paths import get_log_dir

CONSOLE_FORMAT = (
    "%(log_color)s%(asctime)s | %(levelname)-8s | %(name)s%(reset)s | %(message)s"
)
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogManager:
    """
    Centralized logging configuration and management.

    The root logger gets a colored console handler and a size-rotated
    file handler exactly once per process.
    """

    _instance: LogManager | None = None
    _initialized: bool = False

    def __new__(cls, *args: object, **kwargs: object) -> LogManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, log_dir: Path | None = None, level: int | str = logging.INFO) -> None:
        if LogManager._initialized:
            return

        LogManager._initialized = True
        self._loggers: dict[str, logging.Logger] = {}
        self._log_dir = Path(log_dir) if log_dir is not None else get_log_dir()
        self._console_handler: logging.Handler | None = None
        self._setup_root_logger()
        self.set_level(level)

    def _setup_root_logger(self) -> None:
        """Configure the root logger with colored output."""
        self._log_dir.mkdir(parents=True, exist_ok=True)

        console_formatter = colorlog.ColoredFormatter(
            CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(console_formatter)
        self._console_handler = console_handler

        file_handler = RotatingFileHandler(
            self._log_dir / "GuildPackBot.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        file_handler.setLevel(logging.DEBUG)

        root = logging.getLogger()
        root.setLevel(logging.DEBUG)
        root.addHandler(console_handler)
        root.addHandler(file_handler)

        # py-cord 的网关日志过于冗长
        logging.getLogger("discord").setLevel(logging.WARNING)

    def get_logger(self, name: str) -> logging.Logger:
        """Get or create a logger with the given name."""
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]

    def set_level(self, level: int | str) -> None:
        """Set the console logging level."""
        if isinstance(level, str):
            level = getattr(logging, level.upper(), logging.INFO)

        if self._console_handler is not None:
            self._console_handler.setLevel(level)

    @property
    def log_dir(self) -> Path:
        return self._log_dir


def setup_logging(level: int | str = logging.INFO, log_dir: Path | str | None = None) -> LogManager:
    """
    初始化日志系统（重复调用只会调整级别）
    Initialize logging; repeated calls only adjust the console level.
    """
    manager = LogManager(Path(log_dir) if log_dir else None, level)
    manager.set_level(level)
    return manager


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return setup_logging().get_logger(name)
