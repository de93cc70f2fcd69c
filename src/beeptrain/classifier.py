"""
Response classification: direction judgement, correctness, and routing of each
outcome to persistence and the per-condition staircase.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from psychopy import logging

from beeptrain import config
from beeptrain.errors import MissingCollaborator
from beeptrain.events import (
    FALSE_ALARM_INDEX,
    NO_RESPONSE,
    BeepTrainState,
    FalseAlarm,
    Hit,
    Miss,
    ResponseFields,
    ResponseOutcome,
    StimulusEvent,
)
from beeptrain.staircase import Staircase

if TYPE_CHECKING:
    from beeptrain.recorder import Persistence
    from beeptrain.scheduler import BeepScheduler


class Feedback(Protocol):
    def show(self, correct: bool) -> None:
        ...


class LogFeedback:
    """Practice-trial feedback that only goes to the experiment log."""

    def show(self, correct: bool) -> None:
        logging.exp(f"Feedback: {'Correct' if correct else 'Incorrect'}")


@dataclass
class OutcomeTally:
    hits: int = 0
    correct: int = 0
    misses: int = 0
    false_alarms: int = 0


def assign_response_map(rng: random.Random | None = None) -> int:
    """Draw the session's button mapping: +1 (L=faster) or -1 (L=slower)."""
    rng = rng or random.Random()
    response_map = -1 if rng.random() < 0.5 else 1
    logging.exp(
        f"Response mapping assigned: {config.RESPONSE_MAPS[response_map]} "
        f"(response_map={response_map})"
    )
    return response_map


def derive_direction(button: str, response_map: int) -> bool:
    """Return True if pressing `button` ("left"/"right") means "faster"."""
    if button not in ("left", "right"):
        raise ValueError(f"button must be 'left' or 'right'; got {button!r}")
    if response_map not in config.RESPONSE_MAPS:
        raise ValueError(f"response_map must be one of {list(config.RESPONSE_MAPS)}; got {response_map}")
    left = button == "left"
    return left if response_map == 1 else not left


def condition_label(block_type: int) -> str | None:
    """Staircase condition for a block type; None for stationary trials."""
    return config.CONDITION_LABELS.get(int(block_type))


class ResponseClassifier:
    """
    Scores every outcome the scheduler reports for the current trial.

    Hits and misses go to persistence and, from trial N_PRACTICE_TRIALS on,
    to the staircase for the trial's condition; the staircase's next delta
    is pushed straight back into the scheduler. Before the cutoff only
    practice feedback is shown. False alarms are logged and nothing else.
    """

    def __init__(
        self,
        scheduler: "BeepScheduler",
        staircase: Staircase,
        persistence: "Persistence",
        response_map: int,
        feedback: Feedback | None = None,
        n_practice_trials: int = config.N_PRACTICE_TRIALS,
    ) -> None:
        for name, ref in (
            ("scheduler", scheduler),
            ("staircase", staircase),
            ("persistence", persistence),
        ):
            if ref is None:
                raise MissingCollaborator("ResponseClassifier", name)
        if response_map not in config.RESPONSE_MAPS:
            raise ValueError(f"response_map must be one of {list(config.RESPONSE_MAPS)}; got {response_map}")
        self._scheduler = scheduler
        self._staircase = staircase
        self._persistence = persistence
        self._feedback = feedback or LogFeedback()
        self._n_practice = n_practice_trials
        self.response_map = response_map
        self.trial_index = 0
        self.block_type = config.STATIONARY_BLOCK_TYPE
        self.tally = OutcomeTally()

    @property
    def mapping_label(self) -> str:
        return config.RESPONSE_MAPS[self.response_map]

    @property
    def is_practice(self) -> bool:
        return self.trial_index < self._n_practice

    def begin_trial(self, trial_index: int, block_type: int) -> None:
        """Set the trial context; past practice, load the condition's tracked delta."""
        self.trial_index = int(trial_index)
        self.block_type = int(block_type)
        self.tally = OutcomeTally()
        label = condition_label(self.block_type)
        if not self.is_practice and label is not None:
            self._scheduler.set_delta(self._staircase.current_delta(label))

    def responded_faster(self, left_pressed: bool) -> bool:
        return derive_direction("left" if left_pressed else "right", self.response_map)

    def classify(
        self,
        outcome: ResponseOutcome,
        event: StimulusEvent | None = None,
        state: BeepTrainState | None = None,
    ) -> None:
        if isinstance(outcome, Hit):
            self.on_hit(event, outcome.responded_faster, outcome.response_time_s)
        elif isinstance(outcome, Miss):
            self.on_miss(event)
        elif isinstance(outcome, FalseAlarm):
            self.on_false_alarm(outcome, state)
        else:
            raise TypeError(f"Unknown response outcome: {outcome!r}")

    def on_hit(self, evt: StimulusEvent, responded_faster: bool, response_time_s: float) -> bool:
        correct = responded_faster == evt.is_faster
        fields = ResponseFields(
            correct=int(correct),
            response=1.0 if responded_faster else 0.0,
            click_time_s=evt.change_onset_time + response_time_s,
            response_time_s=response_time_s,
        )
        self._persistence.log_event(evt, is_false_alarm=False, fields=fields)
        self.tally.hits += 1
        self.tally.correct += int(correct)

        logging.exp(
            f"[BeepTrain] {'CORRECT' if correct else 'INCORRECT'} — responded "
            f"{'Faster' if responded_faster else 'Slower'}, was "
            f"{'Faster' if evt.is_faster else 'Slower'}"
        )
        self._update_staircase(correct)
        return correct

    def on_miss(self, evt: StimulusEvent) -> None:
        self._persistence.log_event(evt, is_false_alarm=False, fields=NO_RESPONSE)
        self.tally.misses += 1
        logging.exp(
            f"[BeepTrain] MISS (no response) — change was "
            f"{'Faster' if evt.is_faster else 'Slower'}"
        )
        self._update_staircase(False)

    def on_false_alarm(self, outcome: FalseAlarm, state: BeepTrainState | None = None) -> StimulusEvent:
        state = state or self._scheduler.current_state()
        sentinel = StimulusEvent(
            base_frequency_hz=state.base_frequency_hz,
            base_isi_ms=state.base_isi_ms,
            delta_ms=0.0,
            is_faster=False,
            change_onset_time=outcome.time_s,
            change_index=FALSE_ALARM_INDEX,
        )
        fields = ResponseFields(
            correct=0,
            response=1.0 if outcome.responded_faster else 0.0,
            click_time_s=outcome.time_s,
        )
        self._persistence.log_event(sentinel, is_false_alarm=True, fields=fields)
        self.tally.false_alarms += 1
        logging.exp(
            f"[BeepTrain] FALSE ALARM at t={outcome.time_s:.3f} s — responded "
            f"{'Faster' if outcome.responded_faster else 'Slower'}"
        )
        return sentinel

    def _update_staircase(self, correct: bool) -> None:
        if self.is_practice:
            self._feedback.show(correct)
            return
        label = condition_label(self.block_type)
        if label is None:
            return
        next_delta = self._staircase.process_response(label, correct)
        self._scheduler.set_delta(next_delta)
        logging.exp(
            f"[Staircase:{label}] {'correct' if correct else 'incorrect'} -> "
            f"next delta: {next_delta:.1f} ms"
        )
