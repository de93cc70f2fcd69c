"""
StairHandler construction and management, one tracker per condition label.
All staircase intensities are ISI deltas in milliseconds.
"""
from __future__ import annotations

from typing import Protocol

import numpy as np
from psychopy import data, logging

from beeptrain import config
from beeptrain.config import StimulusConfig


class Staircase(Protocol):
    def process_response(self, condition_label: str, correct: bool) -> float:
        """Record one response for condition_label and return the next delta (ms)."""
        ...

    def current_delta(self, condition_label: str) -> float:
        """Delta condition_label's tracker is presenting, without updating it."""
        ...


class StaircaseController:
    """
    Independent 2-down/1-up StairHandler per condition ("slow", "natural").

    Handlers are created on the first response for a label and start from
    the initial delta. Two consecutive correct responses shrink the delta;
    one incorrect response grows it.
    """

    def __init__(
        self,
        initial_delta_ms: float = config.INITIAL_DELTA_MS,
        min_delta_ms: float = config.MIN_DELTA_MS,
        max_delta_ms: float = config.MAX_DELTA_MS,
        step_sizes_ms: list[float] | None = None,
        n_trials: int = config.STAIR_N_TRIALS,
    ) -> None:
        self._initial = initial_delta_ms
        self._min = min_delta_ms
        self._max = max_delta_ms
        self._step_sizes = list(step_sizes_ms or config.STAIR_STEP_SIZES_MS)
        self._n_trials = n_trials
        self._handlers: dict[str, data.StairHandler] = {}
        self._current: dict[str, float] = {}

    @classmethod
    def from_config(cls, stim: StimulusConfig) -> StaircaseController:
        return cls(stim.initial_delta_ms, stim.min_delta_ms, stim.max_delta_ms)

    @property
    def labels(self) -> list[str]:
        return list(self._handlers)

    def _clip(self, value: float) -> float:
        return float(np.clip(value, self._min, self._max))

    def _handler(self, label: str) -> data.StairHandler:
        if label not in self._handlers:
            handler = data.StairHandler(
                startVal=self._initial,
                stepSizes=self._step_sizes,
                nTrials=self._n_trials,
                nUp=config.STAIR_N_UP,
                nDown=config.STAIR_N_DOWN,
                stepType="lin",
                minVal=self._min,
                maxVal=self._max,
                name=label,
                autoLog=False,
            )
            self._handlers[label] = handler
            self._current[label] = self._clip(next(handler))
        return self._handlers[label]

    def current_delta(self, label: str) -> float:
        """Delta the label's tracker is currently presenting (no update)."""
        self._handler(label)
        return self._current[label]

    def process_response(self, condition_label: str, correct: bool) -> float:
        handler = self._handler(condition_label)
        if handler.finished:
            logging.warning(
                f"Staircase '{condition_label}' finished after {handler.thisTrialN + 1} "
                f"trials; holding delta at {self._current[condition_label]:.1f} ms"
            )
            return self._current[condition_label]

        handler.addResponse(int(correct))
        try:
            nxt = self._clip(next(handler))
        except StopIteration:
            logging.warning(f"Staircase '{condition_label}' reached its trial limit")
            nxt = self._current[condition_label]
        self._current[condition_label] = nxt
        return nxt

    def n_reversals(self, label: str) -> int:
        if label not in self._handlers:
            return 0
        return len(self._handlers[label].reversalIntensities)

    def threshold(self, label: str, n_last: int = 6) -> float | None:
        """Mean delta over the last n_last reversals, or None before any reversal."""
        if label not in self._handlers:
            return None
        reversals = self._handlers[label].reversalIntensities[-n_last:]
        if not reversals:
            return None
        return float(np.mean(reversals))
