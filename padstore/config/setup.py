import os

from cachetools import cached
from dotenv import find_dotenv, load_dotenv

from padstore.config.logger import logging_setup
from padstore.config.settings import apply_env_overrides


@cached(cache={})
def setup():
    """
    One-time setup of configs and logging. Idempotent.
    """

    env_setup()

    logging_setup()


def env_setup() -> str | None:
    """
    Load a `.env` file if there is one, then apply any `PADSTORE_*` overrides
    to the global settings.
    """
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)
    apply_env_overrides(os.environ)
    return dotenv_path
