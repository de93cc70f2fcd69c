"""
Data recording: EventRecord, Persistence protocol, EventCsvWriter, write_manifest.
"""
from __future__ import annotations

import csv
import json
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from beeptrain.events import ResponseFields, StimulusEvent

if TYPE_CHECKING:
    from beeptrain.config import StimulusConfig
    from beeptrain.session import SessionInfo


class Persistence(Protocol):
    def log_event(self, event: StimulusEvent, is_false_alarm: bool, fields: ResponseFields) -> None:
        """Append one event row. Fire-and-forget."""
        ...


@dataclass
class TrialContext:
    trial_n: int = 0
    block_id: int = 0
    trial_id: int = 0
    block_type: int = 0
    is_stationary: int = 1
    subject_id: str = ""


@dataclass
class EventRecord:
    trial_n: int
    block_id: int
    trial_id: int
    block_type: int
    is_stationary: int
    is_false_alarm: int
    change_index: int
    base_frequency_hz: float
    base_isi_ms: float
    delta_ms: float
    changed_isi_ms: float
    is_faster: int
    change_onset_time: float
    correct: int
    response: float          # 1 faster, 0 slower, -1 no response
    click_time_s: float      # -1 when no click
    response_time_s: float   # -1 when no response
    subject_id: str


EVENT_COLUMNS: list[str] = [
    "trial_n", "block_id", "trial_id", "block_type", "is_stationary",
    "is_false_alarm", "change_index", "base_frequency_hz", "base_isi_ms",
    "delta_ms", "changed_isi_ms", "is_faster", "change_onset_time",
    "correct", "response", "click_time_s", "response_time_s", "subject_id",
]


def build_record(
    context: TrialContext, event: StimulusEvent, is_false_alarm: bool, fields: ResponseFields
) -> EventRecord:
    return EventRecord(
        trial_n=context.trial_n,
        block_id=context.block_id,
        trial_id=context.trial_id,
        block_type=context.block_type,
        is_stationary=context.is_stationary,
        is_false_alarm=int(is_false_alarm),
        change_index=event.change_index,
        base_frequency_hz=event.base_frequency_hz,
        base_isi_ms=event.base_isi_ms,
        delta_ms=round(event.delta_ms, 3),
        changed_isi_ms=round(event.changed_isi_ms, 3),
        is_faster=int(event.is_faster),
        change_onset_time=round(event.change_onset_time, 6),
        correct=fields.correct,
        response=fields.response,
        click_time_s=round(fields.click_time_s, 6),
        response_time_s=round(fields.response_time_s, 6),
        subject_id=context.subject_id,
    )


class CsvWriter:
    def __init__(self, path: Path, columns: list[str]) -> None:
        self._file = open(path, "w", newline="")
        self._writer = csv.DictWriter(self._file, fieldnames=columns)
        self._writer.writeheader()
        self._columns = columns

    def append(self, record: object) -> None:
        row = {k: getattr(record, k) for k in self._columns}
        self._writer.writerow(row)
        self._file.flush()

    def close(self) -> None:
        self._file.close()


class EventCsvWriter(CsvWriter):
    """Persistence sink: one row per hit, miss or false alarm, flushed at once."""

    def __init__(self, path: Path, subject_id: str = "") -> None:
        super().__init__(path, EVENT_COLUMNS)
        self.context = TrialContext(subject_id=subject_id)
        self.n_rows = 0

    def set_trial(self, trial_n: int, block_id: int, trial_id: int, block_type: int) -> None:
        self.context = TrialContext(
            trial_n=trial_n,
            block_id=block_id,
            trial_id=trial_id,
            block_type=block_type,
            is_stationary=int(block_type == 0),
            subject_id=self.context.subject_id,
        )

    def log_event(self, event: StimulusEvent, is_false_alarm: bool, fields: ResponseFields) -> None:
        self.append(build_record(self.context, event, is_false_alarm, fields))
        self.n_rows += 1


def write_manifest(
    run_dir: Path,
    session_info: "SessionInfo",
    session_time: datetime,
    stim: "StimulusConfig",
    response_mapping: str,
    n_trials: int,
) -> None:
    from beeptrain import __version__
    from beeptrain.config import N_PRACTICE_TRIALS, STAIR_N_DOWN, STAIR_N_UP, STAIR_STEP_SIZES_MS

    manifest = {
        "beep_train_task_version": __version__,
        "subject_id": session_info.subject_id,
        "design": session_info.design,
        "emulate_audio": session_info.emulate_audio,
        "session_time": session_time.isoformat(timespec="seconds"),
        "trial_duration_s": session_info.trial_duration_s,
        "response_mapping": response_mapping,
        "n_trials": n_trials,
        "n_practice_trials": N_PRACTICE_TRIALS,
        "stimulus": asdict(stim),
        "staircase": {
            "n_up": STAIR_N_UP,
            "n_down": STAIR_N_DOWN,
            "step_sizes_ms": STAIR_STEP_SIZES_MS,
        },
    }
    with open(run_dir / "manifest.json", "w") as f:
        json.dump(manifest, f, indent=2)
