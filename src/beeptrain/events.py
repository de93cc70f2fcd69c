"""
Shared value types: BeepTrainState, StimulusEvent and the response outcomes.
"""
from __future__ import annotations

from dataclasses import dataclass

FALSE_ALARM_INDEX: int = -1   # change_index sentinel: no real change happened


@dataclass
class BeepTrainState:
    """Mutable train state, owned by one BeepScheduler for the length of a trial."""

    base_frequency_hz: float
    base_isi_ms: float
    current_delta_ms: float       # staircase-controlled ISI shift
    is_faster: bool = False       # direction of the most recent change
    change_onset_time: float = 0.0
    is_changed: bool = False      # currently in the changed-ISI phase?
    change_count: int = 0         # changes so far this trial
    is_running: bool = False


@dataclass(frozen=True)
class StimulusEvent:
    """Immutable snapshot of one ISI change, created once at change onset."""

    base_frequency_hz: float
    base_isi_ms: float
    delta_ms: float
    is_faster: bool
    change_onset_time: float      # trial-relative seconds
    change_index: int             # 0, 1, 2... or FALSE_ALARM_INDEX
    changed_isi_ms: float = 0.0

    @property
    def is_false_alarm(self) -> bool:
        return self.change_index == FALSE_ALARM_INDEX


@dataclass(frozen=True)
class Hit:
    response_time_s: float        # from change onset
    responded_faster: bool


@dataclass(frozen=True)
class Miss:
    pass


@dataclass(frozen=True)
class FalseAlarm:
    responded_faster: bool
    time_s: float                 # trial-relative press time


ResponseOutcome = Hit | Miss | FalseAlarm


@dataclass(frozen=True)
class ResponseFields:
    """Outcome columns written next to each StimulusEvent."""

    correct: int                  # 1 correct direction, 0 wrong direction or miss
    response: float               # 1 faster, 0 slower, -1 no response
    click_time_s: float           # trial-relative, -1 when no click
    response_time_s: float = -1.0


NO_RESPONSE = ResponseFields(correct=0, response=-1.0, click_time_s=-1.0)
