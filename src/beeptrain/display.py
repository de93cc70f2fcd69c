"""
On-screen practice feedback. The beep train itself draws nothing; the only
visual stimulus during a trial is the brief Correct / Incorrect text.
"""
from __future__ import annotations

from typing import Callable

from psychopy import core, logging, visual

from beeptrain import config


class TextFeedback:
    """
    Shows "Correct" or "Incorrect" for duration_s, then clears the screen.

    show() blocks for duration_s through the injected wait(), so the trial
    clock keeps running while the text is up.
    """

    def __init__(
        self,
        win: visual.Window,
        duration_s: float = config.FEEDBACK_DUR_S,
        wait: Callable[[float], None] | None = None,
    ) -> None:
        y_scr = 1.0
        font_h = y_scr / 25
        self._win = win
        self._duration_s = duration_s
        self._wait = wait or core.wait
        self.text = visual.TextStim(
            win, name="feedback", font="Arial", pos=(0, 0),
            height=font_h + y_scr / 30, wrapWidth=None, color="white",
            autoLog=False,
        )

    def show(self, correct: bool) -> None:
        label = "Correct" if correct else "Incorrect"
        self.text.text = label
        self.text.color = "green" if correct else "red"
        self.text.draw()
        self._win.flip()
        logging.exp(f"Feedback: {label}")
        self._wait(self._duration_s)
        self._win.flip()
