"""
All task constants and the session-scoped StimulusConfig.
No imports from other beeptrain modules except errors.
All time values are in seconds unless the name includes a unit suffix.
"""
from __future__ import annotations

from dataclasses import dataclass

from beeptrain.errors import InvalidConfig

# Tone
BASE_FREQUENCY_HZ: float = 500.0
BEEP_DURATION_MS: float = 50.0
TONE_AMPLITUDE: float = 0.8
RAMP_DURATION_MS: float = 15.0   # cosine on/off ramp, prevents clicks
SAMPLE_RATE: int = 44100

# Beep train
BASE_ISI_MS: float = 100.0
MIN_ISI_MARGIN_MS: float = 10.0   # changed ISI >= beep duration + margin
STANDARD_REPETITIONS: int = 5
MIN_STANDARD_PERIOD_S: float = 0.5
MAX_STANDARD_PERIOD_S: float = 1.5
DETECTION_WINDOW_S: float = 0.8

# ISI change magnitude (ms)
INITIAL_DELTA_MS: float = 50.0
MIN_DELTA_MS: float = 1.0
MAX_DELTA_MS: float = 550.0

# Staircase (2-down / 1-up on delta)
STAIR_N_UP: int = 1
STAIR_N_DOWN: int = 2
STAIR_STEP_SIZES_MS: list[float] = [40.0, 20.0, 10.0, 5.0, 2.0]
STAIR_N_TRIALS: int = 500

# Trial structure
TRIAL_DURATION_S: float = 20.0
N_PRACTICE_TRIALS: int = 2        # trials before the staircase takes over
FEEDBACK_DUR_S: float = 0.2

# block_type -> staircase condition (stationary trials have none)
CONDITION_LABELS: dict[int, str] = {1: "slow", 2: "natural"}
STATIONARY_BLOCK_TYPE: int = 0

# +1: left=faster, right=slower; -1: reversed
RESPONSE_MAPS: dict[int, str] = {1: "L:Faster R:Slower", -1: "L:Slower R:Faster"}

# Keyboard layout
RESPONSE_KEYS: dict[str, str] = {"left": "LEFT", "right": "RIGHT"}
KEYS_SESSION: dict[str, str] = {"start": "space", "end": "escape"}


@dataclass(frozen=True)
class StimulusConfig:
    base_frequency_hz: float = BASE_FREQUENCY_HZ
    beep_duration_ms: float = BEEP_DURATION_MS
    base_isi_ms: float = BASE_ISI_MS
    amplitude: float = TONE_AMPLITUDE
    ramp_duration_ms: float = RAMP_DURATION_MS
    initial_delta_ms: float = INITIAL_DELTA_MS
    min_delta_ms: float = MIN_DELTA_MS
    max_delta_ms: float = MAX_DELTA_MS
    min_standard_period_s: float = MIN_STANDARD_PERIOD_S
    max_standard_period_s: float = MAX_STANDARD_PERIOD_S
    detection_window_s: float = DETECTION_WINDOW_S
    standard_repetitions: int = STANDARD_REPETITIONS
    sample_rate: int = SAMPLE_RATE

    def __post_init__(self) -> None:
        if not 0.0 <= self.amplitude <= 1.0:
            raise InvalidConfig(f"amplitude must be in [0, 1]; got {self.amplitude}")
        positive = {
            "base_frequency_hz": self.base_frequency_hz,
            "beep_duration_ms": self.beep_duration_ms,
            "base_isi_ms": self.base_isi_ms,
            "ramp_duration_ms": self.ramp_duration_ms,
            "min_delta_ms": self.min_delta_ms,
            "max_delta_ms": self.max_delta_ms,
            "min_standard_period_s": self.min_standard_period_s,
            "max_standard_period_s": self.max_standard_period_s,
            "detection_window_s": self.detection_window_s,
            "sample_rate": self.sample_rate,
        }
        for name, value in positive.items():
            if value <= 0:
                raise InvalidConfig(f"{name} must be > 0; got {value}")
        if self.min_delta_ms > self.max_delta_ms:
            raise InvalidConfig(
                f"min_delta_ms ({self.min_delta_ms}) exceeds max_delta_ms ({self.max_delta_ms})"
            )
        if self.min_standard_period_s > self.max_standard_period_s:
            raise InvalidConfig(
                f"min_standard_period_s ({self.min_standard_period_s}) exceeds "
                f"max_standard_period_s ({self.max_standard_period_s})"
            )
        if self.standard_repetitions < 0:
            raise InvalidConfig(
                f"standard_repetitions must be >= 0; got {self.standard_repetitions}"
            )

    @property
    def base_isi_s(self) -> float:
        return self.base_isi_ms / 1000.0

    @property
    def beep_duration_s(self) -> float:
        return self.beep_duration_ms / 1000.0

    @property
    def min_isi_ms(self) -> float:
        """Shortest allowed changed ISI: beep duration plus the overlap margin."""
        return self.beep_duration_ms + MIN_ISI_MARGIN_MS
