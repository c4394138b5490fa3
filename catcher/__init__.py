"""catcher package exports."""

from catcher.cache import Catcher, StateType
from catcher.config import CatcherSettings, get_settings
from catcher.errors import CatcherError, InvalidStateError
from catcher.logging import configure_logging
from catcher.timer import LoopTimer, Timer

__all__ = [
    "Catcher",
    "StateType",
    "CatcherSettings",
    "get_settings",
    "CatcherError",
    "InvalidStateError",
    "configure_logging",
    "LoopTimer",
    "Timer",
]
