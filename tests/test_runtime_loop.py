from __future__ import annotations

import unittest
from pathlib import Path

from lazygraph.actions import AppAction, NavigationAction
from lazygraph.runtime.loop import (
    FLASH_TIMEOUT_MS,
    IDLE_TIMEOUT_MS,
    RuntimeLoopCallbacks,
    input_timeout_ms,
    run_main_loop,
)
from lazygraph.state import ApplicationState


class _Driver:
    """Scripted stand-in for the terminal, dispatcher and watcher."""

    def __init__(self, state: ApplicationState, keys: list[str], changes: list[bool] | None = None) -> None:
        self.state = state
        self.keys = list(keys)
        self.changes = list(changes or [])
        self.sizes: list[tuple[int, int]] = []
        self.now = 0.0
        self.renders = 0
        self.refreshes = 0
        self.timeouts: list[int] = []
        self.dispatched: list[object] = []

    def render(self) -> None:
        self.renders += 1

    def read_key(self, timeout_ms: int) -> str:
        self.timeouts.append(timeout_ms)
        if not self.keys:
            self.state.should_quit = True
            return ""
        return self.keys.pop(0)

    def dispatch(self, action) -> bool:
        self.dispatched.append(action.op)
        if action.op is AppAction.QUIT:
            self.state.should_quit = True
        return True

    def refresh(self) -> None:
        self.refreshes += 1
        self.state.dirty = False

    def check_for_changes(self) -> bool:
        return self.changes.pop(0) if self.changes else False

    def screen_size(self) -> tuple[int, int]:
        return self.sizes.pop(0) if self.sizes else (80, 24)

    def monotonic(self) -> float:
        return self.now

    def callbacks(self) -> RuntimeLoopCallbacks:
        return RuntimeLoopCallbacks(
            render=self.render,
            read_key=self.read_key,
            dispatch=self.dispatch,
            refresh=self.refresh,
            check_for_changes=self.check_for_changes,
            screen_size=self.screen_size,
            monotonic=self.monotonic,
        )


def _state() -> ApplicationState:
    return ApplicationState(repo_path=Path("/repo"))


class RuntimeLoopTests(unittest.TestCase):
    def test_quit_key_stops_loop(self) -> None:
        state = _state()
        driver = _Driver(state, ["j", "q", "j"])

        run_main_loop(state, driver.callbacks())

        self.assertEqual(driver.dispatched, [NavigationAction.MOVE_DOWN, AppAction.QUIT])
        self.assertEqual(driver.keys, ["j"])

    def test_initial_dirty_state_refreshes_before_first_render(self) -> None:
        state = _state()
        driver = _Driver(state, ["q"])

        run_main_loop(state, driver.callbacks())

        self.assertEqual(driver.refreshes, 1)
        self.assertEqual(driver.renders, 1)

    def test_idle_without_changes_does_not_redraw(self) -> None:
        state = _state()
        state.dirty = False
        driver = _Driver(state, ["", "", "", "q"])

        run_main_loop(state, driver.callbacks())

        self.assertEqual(driver.renders, 1)
        self.assertEqual(driver.refreshes, 0)

    def test_unbound_key_is_ignored(self) -> None:
        state = _state()
        state.dirty = False
        driver = _Driver(state, ["Z", "q"])

        run_main_loop(state, driver.callbacks())

        self.assertEqual(driver.dispatched, [AppAction.QUIT])
        self.assertEqual(driver.renders, 1)

    def test_external_change_refreshes_and_redraws(self) -> None:
        state = _state()
        state.dirty = False
        driver = _Driver(state, ["", "q"], changes=[True])

        run_main_loop(state, driver.callbacks())

        self.assertEqual(driver.refreshes, 1)
        self.assertEqual(driver.renders, 2)

    def test_watcher_is_not_polled_while_keys_arrive(self) -> None:
        state = _state()
        state.dirty = False
        driver = _Driver(state, ["j", "q"], changes=[True])

        run_main_loop(state, driver.callbacks())

        self.assertEqual(driver.changes, [True])

    def test_expired_flash_is_cleared_and_redrawn(self) -> None:
        state = _state()
        state.dirty = False
        state.set_flash("Fetched origin", now=0.0)
        driver = _Driver(state, ["", "q"])
        driver.now = 10.0

        run_main_loop(state, driver.callbacks())

        self.assertIsNone(state.flash_message)
        self.assertEqual(driver.renders, 2)

    def test_flash_shortens_input_timeout(self) -> None:
        state = _state()
        state.dirty = False
        state.set_flash("Pushed", now=0.0)
        driver = _Driver(state, ["", "q"])
        driver.now = 1.0

        run_main_loop(state, driver.callbacks())

        self.assertEqual(driver.timeouts, [FLASH_TIMEOUT_MS, FLASH_TIMEOUT_MS])

    def test_resize_forces_redraw(self) -> None:
        state = _state()
        state.dirty = False
        driver = _Driver(state, ["", "q"])
        driver.sizes = [(80, 24), (80, 24), (100, 30), (100, 30)]

        run_main_loop(state, driver.callbacks())

        self.assertEqual(driver.renders, 2)


class InputTimeoutTests(unittest.TestCase):
    def test_timeout_depends_on_flash(self) -> None:
        state = _state()
        self.assertEqual(input_timeout_ms(state), IDLE_TIMEOUT_MS)
        state.set_flash("hello")
        self.assertEqual(input_timeout_ms(state), FLASH_TIMEOUT_MS)


if __name__ == "__main__":
    unittest.main()
