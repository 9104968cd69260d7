"""Helpers shared by command implementations."""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Callable

from rich.console import Console

from ..errors import DocvaultError
from ..manager import Manager

logger = logging.getLogger(__name__)


def open_manager(root: Path | None) -> Manager:
    return Manager.open(root)


def reports_errors(func: Callable[..., int]) -> Callable[..., int]:
    """Turn a ``DocvaultError`` into a red message on stderr and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> int:
        try:
            return func(*args, **kwargs)
        except DocvaultError as e:
            logger.debug("%s failed", func.__name__, exc_info=True)
            Console(stderr=True).print(f"Error: {e}", style="bold red", markup=False, highlight=False)
            return 1

    return wrapper
