"""Key-token to action tables."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..actions import Action


@dataclass(frozen=True)
class KeyBinding:
    """One or more key tokens that all produce the same action."""

    keys: tuple[str, ...]
    action: Action


def bind(action: Action, *keys: str) -> KeyBinding:
    """Bind ``action`` to each of ``keys``."""
    return KeyBinding(keys, action)


class KeyTable:
    """Exact-match lookup from key token to action, with optional normalization."""

    def __init__(self, *bindings: KeyBinding, normalize: Callable[[str], str] | None = None) -> None:
        self._normalize = normalize if normalize is not None else self._identity
        self._actions: dict[str, Action] = {}
        self.register(*bindings)

    @staticmethod
    def _identity(key: str) -> str:
        return key

    def register(self, *bindings: KeyBinding) -> KeyTable:
        """Add ``bindings``; later bindings win over earlier ones for shared keys."""
        for binding in bindings:
            for key in binding.keys:
                self._actions[self._normalize(key)] = binding.action
        return self

    def lookup(self, key: str) -> Action | None:
        """Return the action bound to ``key``, if any."""
        return self._actions.get(self._normalize(key))

    def __contains__(self, key: str) -> bool:
        return self._normalize(key) in self._actions

    def keys(self) -> list[str]:
        """Return every bound key in registration order."""
        return list(self._actions)
