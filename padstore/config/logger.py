import logging
import os
import threading
from logging import Formatter
from pathlib import Path
from typing import Optional

import rich
from rich.logging import RichHandler

from padstore.config.settings import global_settings, LogLevel
from padstore.config.text_styles import EMOJI_ERROR, EMOJI_WARN

LOG_FILE_NAME = "padstore.log"

_log_lock = threading.RLock()

_file_handler: Optional[logging.Handler] = None
_console_handler: Optional[logging.Handler] = None


def log_dir() -> Path:
    return global_settings().log_dir


def log_file_path() -> Path:
    return log_dir() / LOG_FILE_NAME


def logging_setup():
    """
    Set up or reset logging setup. Call at initial run and again if log directory changes.
    Replaces all previous handlers on the package logger. Can be called to reset with
    different settings.
    """
    global _file_handler, _console_handler

    with _log_lock:
        os.makedirs(log_dir(), exist_ok=True)

        # Verbose logging to file, important logging to console.
        _file_handler = logging.FileHandler(log_file_path())
        _file_handler.setLevel(global_settings().file_log_level.value)
        _file_handler.setFormatter(
            Formatter("%(asctime)s %(levelname).1s %(name)s - %(message)s")
        )

        _console_handler = RichHandler(
            console=rich.get_console(),
            level=global_settings().console_log_level.value,
            show_time=False,
            show_path=False,
            show_level=False,
            markup=False,
        )
        _console_handler.setLevel(global_settings().console_log_level.value)
        _console_handler.setFormatter(Formatter("%(message)s"))

        logger = logging.getLogger("padstore")
        logger.setLevel(min(_file_handler.level, _console_handler.level))
        logger.propagate = False
        # Remove any existing handlers.
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.addHandler(_console_handler)
        logger.addHandler(_file_handler)


def prefix(line, emoji: str = "", warn_emoji: str = ""):
    emojis = f"{warn_emoji}{emoji}".strip()
    return " ".join(filter(None, [emojis, line]))


def prefix_args(args, emoji: str = "", warn_emoji: str = ""):
    if len(args) > 0:
        args = (prefix(args[0], emoji, warn_emoji),) + args[1:]
    return args


class CustomLogger:
    """
    Custom logger to be clearer about user messages.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def debug(self, *args, **kwargs):
        self.logger.debug(*args, **kwargs)

    def info(self, *args, **kwargs):
        self.logger.info(*args, **kwargs)

    def message(self, *args, **kwargs):
        self.logger.warning(*args, **kwargs)

    def warning(self, *args, **kwargs):
        self.logger.warning(*prefix_args(args, warn_emoji=EMOJI_WARN), **kwargs)

    def error(self, *args, **kwargs):
        self.logger.error(*prefix_args(args, warn_emoji=EMOJI_ERROR), **kwargs)

    def log(self, level: LogLevel, *args, **kwargs):
        getattr(self, level.name)(*args, **kwargs)

    # Fallback for other attributes/methods.
    def __getattr__(self, attr):
        return getattr(self.logger, attr)


def get_logger(name: str):
    return CustomLogger(name)
