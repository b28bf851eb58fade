"""
Command-line entry point: `padstore scan`, `padstore analyze`, `padstore serve`.
"""

import sys
from typing import List

from rich import print_json

# Keeping initial imports/deps minimal.
from padstore.config.logger import get_logger
from padstore.config.settings import APP_NAME
from padstore.config.setup import setup
from padstore.errors import InvalidInput, is_fatal
from padstore.version import get_version

# Ensure logging is set up before anything else.
setup()

log = get_logger(__name__)

__version__ = get_version()

APP_VERSION = f"{APP_NAME} {__version__}"

USAGE = f"""{APP_VERSION}

Usage:
  padstore scan ROOT             Scan a workspace and print the index as JSON.
  padstore analyze ROOT PATH...  Analyze changed paths and print the patch as JSON.
  padstore serve                 Run the local JSON server until interrupted.
  padstore --version
  padstore --help
"""


def cmd_scan(args: List[str]) -> None:
    from padstore import api

    if len(args) != 1:
        raise InvalidInput("Usage: padstore scan ROOT")
    print_json(data=api.scan_workspace(args[0]).to_json_dict())


def cmd_analyze(args: List[str]) -> None:
    from padstore import api

    if len(args) < 2:
        raise InvalidInput("Usage: padstore analyze ROOT PATH...")
    print_json(data=api.analyze_paths(args[0], args[1:]).to_json_dict())


def cmd_serve(args: List[str]) -> None:
    from padstore.server.local_server import LocalServer

    if args:
        raise InvalidInput("Usage: padstore serve")
    LocalServer().run()


COMMANDS = {
    "scan": cmd_scan,
    "analyze": cmd_analyze,
    "serve": cmd_serve,
}


def parse_args(argv: List[str]):
    # Do our own arg parsing since there are only a few fixed forms.
    if argv == ["--version"]:
        print(APP_VERSION)
        sys.exit(0)
    elif argv == ["--help"] or not argv:
        print(USAGE)
        sys.exit(0)
    elif argv[0].startswith("-"):
        print(f"Unrecognized option: {argv[0]}", file=sys.stderr)
        sys.exit(2)
    elif argv[0] not in COMMANDS:
        print(f"Unrecognized command: {argv[0]}\n\n{USAGE}", file=sys.stderr)
        sys.exit(2)

    return COMMANDS[argv[0]], argv[1:]


def main():
    command, args = parse_args(sys.argv[1:])
    try:
        command(args)
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        if is_fatal(e):
            log.error("Error: %s", e, exc_info=e)
        else:
            log.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
