"""
Pure-tone synthesis with cosine onset/offset ramps.
The buffer is computed once per session and replayed for every beep.
"""
from __future__ import annotations

import math
from functools import lru_cache

import numpy as np

from beeptrain.config import StimulusConfig
from beeptrain.errors import InvalidConfig


def _n_samples(duration_s: float, sample_rate: int) -> int:
    """
    ceil(duration_s * sample_rate), with the product first rounded to 6
    decimals. Plain ceil would turn 0.05 * 44100 (2205.0000000000005) into
    2206; the rounding only absorbs float noise, so any real fractional
    sample still rounds up.
    """
    return math.ceil(round(duration_s * sample_rate, 6))


def synthesize(
    duration_s: float,
    frequency_hz: float,
    amplitude: float,
    ramp_duration_ms: float,
    sample_rate: int,
) -> np.ndarray:
    """
    Return a read-only float32 sine tone of duration_s seconds.

    The first and last ramp samples are shaped by a raised-cosine window;
    the ramp is capped at half the tone so the two windows never overlap.
    """
    if sample_rate <= 0:
        raise InvalidConfig(f"sample_rate must be > 0; got {sample_rate}")
    if duration_s < 0:
        raise InvalidConfig(f"duration_s must be >= 0; got {duration_s}")

    n = max(1, _n_samples(duration_s, sample_rate))
    t = np.arange(n, dtype=np.float64) / sample_rate
    samples = amplitude * np.sin(2.0 * np.pi * frequency_hz * t)

    ramp_n = ramp_samples(ramp_duration_ms, sample_rate, n)
    if ramp_n > 0:
        fraction = np.arange(ramp_n, dtype=np.float64) / ramp_n
        samples[:ramp_n] *= 0.5 * (1.0 - np.cos(np.pi * fraction))
        samples[n - ramp_n:] *= 0.5 * (1.0 + np.cos(np.pi * fraction))

    buffer = samples.astype(np.float32)
    buffer.setflags(write=False)
    return buffer


def ramp_samples(ramp_duration_ms: float, sample_rate: int, n: int) -> int:
    """Number of samples in each cosine ramp for a tone of n samples."""
    return min(_n_samples(ramp_duration_ms / 1000.0, sample_rate), n // 2)


@lru_cache(maxsize=None)
def tone_for(config: StimulusConfig) -> np.ndarray:
    """Session tone buffer for config (cached; the same array every call)."""
    return synthesize(
        duration_s=config.beep_duration_s,
        frequency_hz=config.base_frequency_hz,
        amplitude=config.amplitude,
        ramp_duration_ms=config.ramp_duration_ms,
        sample_rate=config.sample_rate,
    )
