"""Action handlers, one per category, and the dispatcher that routes to them."""

from .base import ActionHandler, HandlerContext
from .dispatcher import Dispatcher, default_handlers
from .refresh import refresh_state

__all__ = [
    "ActionHandler",
    "Dispatcher",
    "HandlerContext",
    "default_handlers",
    "refresh_state",
]
