"""Keyboard input: raw key decoding and the key-to-action map."""

from .keymap import key_to_action
from .reader import read_key

__all__ = ["key_to_action", "read_key"]
