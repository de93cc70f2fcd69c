"""
Response-button input and trial clock contracts.

InputSource  – current left/right pressed state plus a blocking release wait.
KeyboardInput – InputSource over a pyglet KeyStateHandler attached to the window.
"""
from __future__ import annotations

from typing import Protocol

from beeptrain import config


class InputSource(Protocol):
    left_pressed: bool
    right_pressed: bool

    def wait_until_released(self) -> None:
        """Block until neither button is pressed."""
        ...


class TrialClock(Protocol):
    def getTime(self) -> float:
        """Return trial-relative seconds (monotonically increasing)."""
        ...


def read_buttons(source: InputSource) -> tuple[bool, bool]:
    """One (left, right) reading; press detection and direction both use it."""
    left = bool(source.left_pressed)
    right = bool(source.right_pressed)
    return left, right


class KeyboardInput:
    """
    Polls key *state* (held / not held) rather than key-press events,
    so a held button stays active across ticks until it is released.
    """

    def __init__(self, win, keys: dict[str, str] | None = None) -> None:
        from pyglet.window import key

        keys = keys or config.RESPONSE_KEYS
        self._win = win
        self._state = key.KeyStateHandler()
        self._left = getattr(key, keys["left"])
        self._right = getattr(key, keys["right"])
        win.winHandle.push_handlers(self._state)

    def _pump(self) -> None:
        self._win.winHandle.dispatch_events()

    @property
    def left_pressed(self) -> bool:
        self._pump()
        return bool(self._state[self._left])

    @property
    def right_pressed(self) -> bool:
        self._pump()
        return bool(self._state[self._right])

    def wait_until_released(self) -> None:
        # unbounded: a stuck key holds the train here
        from time import sleep
        while self.left_pressed or self.right_pressed:
            sleep(0.001)
