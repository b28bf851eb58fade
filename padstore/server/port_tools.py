import socket
from typing import Iterable

from padstore.config.logger import get_logger

log = get_logger(__name__)


def local_port_is_free(host: str, port: int) -> bool:
    """
    Check if the specified port is free.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
            return True
        except OSError:
            return False


def find_available_local_port(host: str, ports: Iterable[int]) -> int:
    """
    First free port from `ports`. Raises RuntimeError if none of them are free.
    """
    for port in ports:
        if local_port_is_free(host, port):
            log.info("Found available port: %s:%s", host, port)
            return port
    raise RuntimeError("No available ports found.")


## Tests


def test_find_available_local_port():
    import pytest

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen()
        taken = sock.getsockname()[1]
        assert not local_port_is_free("127.0.0.1", taken)
        with pytest.raises(RuntimeError):
            find_available_local_port("127.0.0.1", [taken])
