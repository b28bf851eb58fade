"""
Local JSON server exposing the padstore entry points to an app front end.
"""

import asyncio
import threading
from functools import cached_property
from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    import uvicorn
    from fastapi import FastAPI

from padstore.config.logger import get_logger
from padstore.config.settings import (
    global_settings,
    LOCAL_SERVER_LOG_FILE,
    resolve_and_create_dirs,
    update_global_settings,
)
from padstore.errors import (
    ArchiveCorrupt,
    DataNotFound,
    InvalidInput,
    InvalidState,
    MissingPath,
    OutsideRoot,
    PadstoreError,
)
from padstore.server import server_routes
from padstore.server.port_tools import find_available_local_port
from padstore.util.format_utils import fmt_path
from padstore.watch.change_feed import ChangeFeed

log = get_logger(__name__)


def log_file_path(port: int) -> Path:
    # Use a different log file for each port (server instance).
    return resolve_and_create_dirs(global_settings().log_dir / LOCAL_SERVER_LOG_FILE.format(port=port))


def _server_config(app: "FastAPI", host: str, port: int) -> "uvicorn.Config":
    import uvicorn

    return uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config={
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                }
            },
            "handlers": {
                "default": {
                    "formatter": "default",
                    "class": "logging.FileHandler",
                    "filename": str(log_file_path(port)),
                }
            },
            "loggers": {
                "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
                "uvicorn.error": {"handlers": ["default"], "level": "INFO", "propagate": False},
                "uvicorn.access": {"handlers": ["default"], "level": "INFO", "propagate": False},
            },
        },
    )


def app_setup(change_feed: Optional[ChangeFeed] = None) -> "FastAPI":
    from fastapi import FastAPI, Request
    from fastapi.responses import JSONResponse

    app = FastAPI()
    app.state.change_feed = change_feed or ChangeFeed(global_settings().change_debounce_secs)

    app.include_router(server_routes.router)

    def error_response(status_code: int, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"message": str(exc)})

    # Map errors to HTTP codes. The most specific registered class wins, so
    # OutsideRoot gets 403 even though it's also an InvalidInput.
    @app.exception_handler(OutsideRoot)
    async def outside_root_handler(request: Request, exc: OutsideRoot):
        return error_response(403, exc)

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        return error_response(400, exc)

    @app.exception_handler(DataNotFound)
    async def data_not_found_handler(request: Request, exc: DataNotFound):
        return error_response(404, exc)

    @app.exception_handler(MissingPath)
    async def missing_path_handler(request: Request, exc: MissingPath):
        return error_response(404, exc)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(request: Request, exc: FileNotFoundError):
        return error_response(404, exc)

    @app.exception_handler(ArchiveCorrupt)
    async def archive_corrupt_handler(request: Request, exc: ArchiveCorrupt):
        return error_response(422, exc)

    @app.exception_handler(PadstoreError)
    async def padstore_error_handler(request: Request, exc: PadstoreError):
        log.error("Request %s failed: %s", request.url.path, exc)
        return error_response(500, exc)

    @app.exception_handler(OSError)
    async def os_error_handler(request: Request, exc: OSError):
        log.error("Request %s failed: %s", request.url.path, exc)
        return error_response(500, exc)

    # Global exception handler.
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log.error("Unexpected error on %s: %s", request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Internal server error."})

    return app


def _pick_port() -> int:
    """
    Pick an available port for the local server and update the global settings.
    """
    settings = global_settings()
    host = settings.local_server_host
    port = find_available_local_port(
        host,
        range(
            settings.local_server_ports_start,
            settings.local_server_ports_start + settings.local_server_ports_max,
        ),
    )

    with update_global_settings() as settings:
        settings.local_server_port = port

    return port


class LocalServer:
    def __init__(self):
        self.server_lock = threading.RLock()
        self.server_instance: Optional["uvicorn.Server"] = None
        self.did_exit = threading.Event()

    @cached_property
    def app(self) -> "FastAPI":
        return app_setup()

    def run(self):
        """
        Run the server on the current thread until it exits.
        """
        import uvicorn

        port = _pick_port()
        host = global_settings().local_server_host
        config = _server_config(self.app, host, port)
        with self.server_lock:
            server = uvicorn.Server(config)
            self.server_instance = server

        async def serve():
            try:
                log.message("Starting local server on %s:%s", host, port)
                log.message("Local server logs: %s", fmt_path(log_file_path(port)))
                await server.serve()
            finally:
                self.did_exit.set()

        try:
            asyncio.run(serve())
        except Exception as e:
            log.error("Server failed with error: %s", e)
        finally:
            self.app.state.change_feed.stop()
            with self.server_lock:
                self.server_instance = None

    def start_server(self):
        with self.server_lock:
            if self.server_instance:
                log.warning(
                    "Server already running on %s:%s.",
                    self.server_instance.config.host,
                    self.server_instance.config.port,
                )
                return

            self.did_exit.clear()
            server_thread = threading.Thread(target=self.run, daemon=True)
            server_thread.start()
            log.info("Created new local server thread: %s", server_thread)

    def stop_server(self):
        with self.server_lock:
            if not self.server_instance:
                log.warning("Server already stopped.")
                return
            self.server_instance.should_exit = True

            # Wait a few seconds for the server to shut down.
            timeout = 5.0
            if not self.did_exit.wait(timeout=timeout):
                log.warning("Server did not shut down within %s seconds, forcing exit.", timeout)
                self.server_instance.force_exit = True
                if not self.did_exit.wait(timeout=timeout):
                    raise InvalidState(f"Server did not shut down within {timeout} seconds")

            self.server_instance = None
            log.message("Server stopped.")

    def restart_server(self):
        self.stop_server()
        self.start_server()
