"""Main interactive event loop.

One iteration renders when needed, waits for a key, dispatches the mapped
action and polls the change watcher while idle. Everything it touches is
injected so the loop can be driven by tests without a terminal.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..actions import Action
from ..input.keymap import key_to_action
from ..state import ApplicationState

logger = logging.getLogger(__name__)

FLASH_TIMEOUT_MS = 100
IDLE_TIMEOUT_MS = 250


@dataclass(frozen=True)
class RuntimeLoopCallbacks:
    """Operations ``run_main_loop`` drives.

    ``read_key`` receives a timeout in milliseconds and returns ``""`` when it
    elapses. ``check_for_changes`` returns ``True`` once the watcher has seen
    a settled external change.
    """

    render: Callable[[], None]
    read_key: Callable[[int], str]
    dispatch: Callable[[Action], bool]
    refresh: Callable[[], None]
    check_for_changes: Callable[[], bool]
    screen_size: Callable[[], tuple[int, int]] = lambda: (0, 0)
    monotonic: Callable[[], float] = time.monotonic


def input_timeout_ms(state: ApplicationState) -> int:
    return FLASH_TIMEOUT_MS if state.flash_message else IDLE_TIMEOUT_MS


def run_main_loop(state: ApplicationState, callbacks: RuntimeLoopCallbacks) -> None:
    """Run until an action sets ``state.should_quit``."""
    ops = callbacks
    if state.dirty:
        ops.refresh()
    needs_render = True
    last_size = ops.screen_size()

    while not state.should_quit:
        size = ops.screen_size()
        if size != last_size:
            last_size = size
            needs_render = True
        if needs_render:
            ops.render()
            needs_render = False

        key = ops.read_key(input_timeout_ms(state))
        if key:
            action = key_to_action(state, key)
            if action is not None:
                ops.dispatch(action)
                needs_render = True
                if state.should_quit:
                    break
        elif ops.check_for_changes():
            logger.debug("external change detected")
            state.mark_dirty()

        if state.expire_flash(ops.monotonic()):
            needs_render = True
        if state.dirty:
            ops.refresh()
            needs_render = True
