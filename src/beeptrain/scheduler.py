"""
BeepScheduler: the STANDARD -> CHANGED -> STANDARD phase loop of the beep train.
Suspensions go through the injected wait() and the input source's release wait.
No rendering objects are built here; no data is written here.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable

import numpy as np
from psychopy import core, logging

from beeptrain.audio import AudioOutput
from beeptrain.config import StimulusConfig
from beeptrain.errors import MissingCollaborator
from beeptrain.events import (
    BeepTrainState,
    FalseAlarm,
    Hit,
    Miss,
    ResponseOutcome,
    StimulusEvent,
)
from beeptrain.inputs import InputSource, TrialClock, read_buttons
from beeptrain.tone import tone_for

if TYPE_CHECKING:
    from beeptrain.classifier import ResponseClassifier


@dataclass
class TrialCollaborators:
    """Per-trial references handed to run_beep_train()."""

    input_source: InputSource
    clock: TrialClock
    responses: "ResponseClassifier"

    def check(self) -> None:
        for name in ("input_source", "clock", "responses"):
            if getattr(self, name) is None:
                raise MissingCollaborator("BeepScheduler.run_beep_train", name)


class BeepScheduler:
    """
    Plays the beep train for one trial at a time and polls the response
    buttons once per beep.

    Standard phase: steady base ISI for a random U[min, max] period; any press
    is a false alarm. Changed phase: ISI shifted by +/- the current delta until
    a press (hit) or until the detection window elapses (miss).
    """

    def __init__(
        self,
        config: StimulusConfig,
        audio: AudioOutput,
        tone: np.ndarray | None = None,
        rng: random.Random | None = None,
        wait: Callable[[float], None] | None = None,
    ) -> None:
        if config is None:
            raise MissingCollaborator("BeepScheduler", "config")
        if audio is None:
            raise MissingCollaborator("BeepScheduler", "audio")
        self._config = config
        self._audio = audio
        self._tone = tone if tone is not None else tone_for(config)
        self._rng = rng or random.Random()
        self._wait = wait or core.wait
        self._stop_requested = False
        self._events: list[StimulusEvent] = []
        self._outcomes: list[ResponseOutcome] = []
        self._state = BeepTrainState(
            base_frequency_hz=config.base_frequency_hz,
            base_isi_ms=config.base_isi_ms,
            current_delta_ms=self._clip_delta(config.initial_delta_ms),
        )
        logging.exp(
            f"BeepScheduler initialised: freq={config.base_frequency_hz:.0f} Hz  "
            f"beep={config.beep_duration_ms:.0f} ms  ISI={config.base_isi_ms:.0f} ms  "
            f"delta={self._state.current_delta_ms:.1f} ms  ramp={config.ramp_duration_ms:.0f} ms"
        )

    # ── public API ───────────────────────────────────────────────────────────

    @property
    def config(self) -> StimulusConfig:
        return self._config

    @property
    def events(self) -> tuple[StimulusEvent, ...]:
        """StimulusEvents emitted during the current (or last) trial."""
        return tuple(self._events)

    @property
    def outcomes(self) -> tuple[ResponseOutcome, ...]:
        return tuple(self._outcomes)

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    def current_state(self) -> BeepTrainState:
        """Return a copy of the train state; mutating it has no effect."""
        return replace(self._state)

    def set_delta(self, delta_ms: float) -> None:
        """Store the clamped delta; used from the next change onset on."""
        self._state.current_delta_ms = self._clip_delta(delta_ms)
        logging.exp(f"[BeepTrain] Delta updated to {self._state.current_delta_ms:.1f} ms")

    def changed_isi_ms(self, delta_ms: float, is_faster: bool) -> float:
        """Changed ISI for a (clamped) delta, floored so beeps never overlap."""
        delta_ms = self._clip_delta(delta_ms)
        base = self._config.base_isi_ms
        isi = base - delta_ms if is_faster else base + delta_ms
        return max(isi, self._config.min_isi_ms)

    def standard_sequence_duration(
        self, repetitions: int | None = None, isi_ms: float | None = None
    ) -> float:
        """Nominal duration (s) of play_standard_sequence() with the same arguments."""
        reps = self._config.standard_repetitions if repetitions is None else repetitions
        isi_ms = self._config.base_isi_ms if isi_ms is None else isi_ms
        return reps * isi_ms / 1000.0

    def play_standard_sequence(
        self, repetitions: int | None = None, isi_ms: float | None = None
    ) -> bool:
        """
        Play `repetitions` beeps at a steady ISI before the train starts.
        Returns True once all beeps were played, False if stopped part-way.
        """
        reps = self._config.standard_repetitions if repetitions is None else repetitions
        isi_ms = self._config.base_isi_ms if isi_ms is None else isi_ms
        self._stop_requested = False
        for i in range(reps):
            if self._stop_requested:
                logging.exp(f"Standard sequence stopped after {i}/{reps} beeps")
                return False
            self._beep(isi_ms / 1000.0)
        logging.exp(f"Standard sequence complete: {reps} beeps at {isi_ms:.0f} ms ISI")
        return True

    def run_beep_train(
        self, trial_duration_s: float, collaborators: TrialCollaborators
    ) -> None:
        """
        Run the phase loop until stop_beep_train() or the trial clock reaches
        trial_duration_s. Any collaborator failure stops the train before it
        propagates.
        """
        if collaborators is None:
            raise MissingCollaborator("BeepScheduler.run_beep_train", "collaborators")
        collaborators.check()

        self._stop_requested = False
        self._events.clear()
        self._outcomes.clear()
        self._state.change_count = 0
        self._state.is_changed = False
        self._state.is_running = True
        try:
            self._run(trial_duration_s, collaborators)
        except Exception:
            logging.error(
                f"[BeepTrain] Aborted after {self._state.change_count} changes; audio stopped"
            )
            self.stop_beep_train()
            raise
        finally:
            self._state.is_running = False
            self._state.is_changed = False
        logging.exp(f"[BeepTrain] Train ended. Total changes: {self._state.change_count}")

    def stop_beep_train(self) -> None:
        """Idempotent: halt the train and silence any playing beep."""
        self._stop_requested = True
        self._state.is_running = False
        self._audio.stop()

    # ── phase loop ───────────────────────────────────────────────────────────

    def _clip_delta(self, delta_ms: float) -> float:
        return float(np.clip(delta_ms, self._config.min_delta_ms, self._config.max_delta_ms))

    def _should_stop(self, clock: TrialClock, trial_duration_s: float) -> bool:
        return self._stop_requested or clock.getTime() >= trial_duration_s

    def _beep(self, isi_s: float) -> None:
        self._audio.play(self._tone)
        self._wait(isi_s)

    def _classify(self, responses: "ResponseClassifier", outcome: ResponseOutcome,
                  event: StimulusEvent | None = None) -> None:
        self._outcomes.append(outcome)
        responses.classify(outcome, event=event, state=self.current_state())

    def _run(self, trial_duration_s: float, c: TrialCollaborators) -> None:
        cfg = self._config
        src, clock, responses = c.input_source, c.clock, c.responses
        base_isi_s = cfg.base_isi_s

        while not self._should_stop(clock, trial_duration_s):
            # ── STANDARD ─────────────────────────────────────────────────────
            standard_s = self._rng.uniform(cfg.min_standard_period_s, cfg.max_standard_period_s)
            elapsed = 0.0
            self._state.is_changed = False
            logging.exp(f"[BeepTrain] Standard phase: {standard_s:.2f} s of steady ISI")

            while elapsed < standard_s:
                if self._should_stop(clock, trial_duration_s):
                    return
                self._beep(base_isi_s)
                elapsed += base_isi_s

                left, right = read_buttons(src)
                if left or right:
                    faster = responses.responded_faster(left)
                    self._classify(responses, FalseAlarm(faster, clock.getTime()))
                    # release wait is not counted towards the standard period
                    src.wait_until_released()

            if self._should_stop(clock, trial_duration_s):
                return

            # ── CHANGED ──────────────────────────────────────────────────────
            evt = self._begin_change(clock)
            changed_isi_s = evt.changed_isi_ms / 1000.0
            elapsed = 0.0
            detected = False

            while elapsed < cfg.detection_window_s:
                if self._should_stop(clock, trial_duration_s):
                    # trial time ran out on a heard change: score it; an explicit stop is not
                    if not self._stop_requested:
                        logging.exp("[BeepTrain] MISS (trial ended inside the detection window)")
                        self._classify(responses, Miss(), event=evt)
                    return
                self._beep(changed_isi_s)
                elapsed += changed_isi_s

                left, right = read_buttons(src)
                if left or right:
                    detected = True
                    faster = responses.responded_faster(left)
                    rt = clock.getTime() - evt.change_onset_time
                    logging.exp(
                        f"[BeepTrain] Response at RT={rt:.3f} s — "
                        f"{'Faster' if faster else 'Slower'}"
                    )
                    self._classify(responses, Hit(rt, faster), event=evt)
                    src.wait_until_released()
                    break

            if not detected:
                logging.exp(f"[BeepTrain] MISS (no response within {cfg.detection_window_s} s)")
                self._classify(responses, Miss(), event=evt)

            self._state.is_changed = False

    def _begin_change(self, clock: TrialClock) -> StimulusEvent:
        state = self._state
        state.is_faster = self._rng.random() < 0.5
        delta_ms = self._clip_delta(state.current_delta_ms)
        changed_isi_ms = self.changed_isi_ms(delta_ms, state.is_faster)

        state.change_onset_time = clock.getTime()
        state.is_changed = True
        state.change_count += 1

        evt = StimulusEvent(
            base_frequency_hz=state.base_frequency_hz,
            base_isi_ms=state.base_isi_ms,
            delta_ms=delta_ms,
            is_faster=state.is_faster,
            change_onset_time=state.change_onset_time,
            change_index=state.change_count - 1,
            changed_isi_ms=changed_isi_ms,
        )
        self._events.append(evt)
        logging.exp(
            f"[BeepTrain] CHANGE #{state.change_count}: ISI {state.base_isi_ms:.0f}->"
            f"{changed_isi_ms:.1f} ms ({'FASTER' if state.is_faster else 'SLOWER'}), "
            f"delta={delta_ms:.1f} ms"
        )
        return evt
