import os
import threading
from contextlib import contextmanager
from enum import Enum
from logging import DEBUG, ERROR, INFO, WARNING
from pathlib import Path
from typing import Mapping

from pydantic.dataclasses import dataclass


APP_NAME = "padstore"

RPAD_EXT = "rpad"

DEFAULT_LOG_DIR = "~/.local/padstore/logs"

LOCAL_SERVER_LOG_FILE = "local_server_{port}.log"
"""File name for uvicorn logs, within the log directory."""

LOCAL_SERVER_HOST = "127.0.0.1"
LOCAL_SERVER_PORT_START = 4490
LOCAL_SERVER_PORTS_MAX = 30

CHANGE_DEBOUNCE_SECS = 0.3
"""Quiet period before a burst of watcher events is delivered as one batch."""


def resolve_and_create_dirs(path: Path | str, is_dir: bool = False) -> Path:
    """
    Resolve a path to an absolute path, handling ~ for the home directory
    and creating any missing parent directories.
    """
    full_path = Path(path).expanduser().resolve()
    if not full_path.exists():
        if is_dir:
            os.makedirs(full_path, exist_ok=True)
        else:
            os.makedirs(full_path.parent, exist_ok=True)
    return full_path


class LogLevel(Enum):
    debug = DEBUG
    info = INFO
    warning = WARNING
    message = WARNING  # Same as warning, just for important console messages.
    error = ERROR

    @classmethod
    def parse(cls, level_str: str):
        canon_name = level_str.strip().lower()
        if canon_name == "warn":
            canon_name = "warning"
        try:
            return cls[canon_name]
        except KeyError:
            raise ValueError(
                f"Invalid log level: `{level_str}`. Valid options are: {', '.join(f'`{name}`' for name in cls.__members__)}"
            )

    def __str__(self):
        return self.name


@dataclass
class Settings:
    hash_algorithm: str
    """Hash used for stable project identifiers. Any `hashlib` algorithm works."""

    untitled_title: str
    """Title written to a new archive when none is given and none exists."""

    archive_version: int
    """Manifest version written to a new archive that has no version yet."""

    change_debounce_secs: float
    """Quiet period before batched watcher events are delivered."""

    console_log_level: LogLevel
    """The log level for console-based logging."""

    file_log_level: LogLevel
    """The log level for file-based logging."""

    log_dir: Path
    """Directory for the log file."""

    local_server_host: str
    """Host the local server binds to."""

    local_server_ports_start: int
    """The start of the range of ports to try to run the local server on."""

    local_server_ports_max: int
    """The maximum number of ports to try to run the local server on."""

    local_server_port: int
    """Actual port number the local server is running on."""


# Initial default settings.
_settings = Settings(
    hash_algorithm="blake2b",
    untitled_title="Untitled",
    archive_version=1,
    change_debounce_secs=CHANGE_DEBOUNCE_SECS,
    console_log_level=LogLevel.warning,
    file_log_level=LogLevel.info,
    log_dir=Path(DEFAULT_LOG_DIR).expanduser(),
    local_server_host=LOCAL_SERVER_HOST,
    local_server_ports_start=LOCAL_SERVER_PORT_START,
    local_server_ports_max=LOCAL_SERVER_PORTS_MAX,
    local_server_port=0,
)


def global_settings() -> Settings:
    """
    Read access to global settings.
    """
    return _settings


_settings_lock = threading.RLock()


@contextmanager
def update_global_settings():
    """
    Context manager for thread-safe updates to global settings.
    """
    with _settings_lock:
        yield _settings


def apply_env_overrides(environ: Mapping[str, str] = os.environ) -> None:
    """
    Apply `PADSTORE_*` environment overrides to the global settings.
    """
    with update_global_settings() as settings:
        if level := environ.get("PADSTORE_LOG_LEVEL"):
            settings.console_log_level = LogLevel.parse(level)
        if level := environ.get("PADSTORE_FILE_LOG_LEVEL"):
            settings.file_log_level = LogLevel.parse(level)
        if log_dir := environ.get("PADSTORE_LOG_DIR"):
            settings.log_dir = Path(log_dir).expanduser()


## Tests


def test_log_level_parse():
    assert LogLevel.parse("WARN") == LogLevel.warning
    assert LogLevel.parse(" debug ") == LogLevel.debug

    import pytest

    with pytest.raises(ValueError):
        LogLevel.parse("loud")
