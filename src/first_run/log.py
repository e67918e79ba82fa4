"""Logging для first run фазы.

Все сообщения first run логики помечаются префиксом FirstRun::
"""

import logging
import os
from typing import Final

FIRST_RUN_LOG_PREFIX: Final[str] = "FirstRun::"

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class FirstRunLogAdapter(logging.LoggerAdapter):
    """LoggerAdapter, добавляющий FIRST_RUN_LOG_PREFIX к каждому сообщению."""

    def process(self, msg, kwargs):
        return f"{FIRST_RUN_LOG_PREFIX}{msg}", kwargs


def get_logger(name: str) -> FirstRunLogAdapter:
    return FirstRunLogAdapter(logging.getLogger(name), {})


def configure_logging() -> None:
    level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
