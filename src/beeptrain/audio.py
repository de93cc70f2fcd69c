"""
Audio output abstraction.

AudioOutput – protocol implemented by:
  PsychopyAudio  – plays the tone buffer through psychopy.sound
  SilentAudio    – counts plays without touching any device (development/tests)
"""
from __future__ import annotations

from typing import Protocol

import numpy as np

from beeptrain import config


class AudioOutput(Protocol):
    """Fire-and-forget playback of one tone buffer."""

    def play(self, buffer: np.ndarray) -> None:
        """Start playing buffer without blocking."""
        ...

    def stop(self) -> None:
        """Silence anything currently playing."""
        ...


class PsychopyAudio:
    """psychopy.sound backend; one Sound object wraps the session buffer."""

    def __init__(self, sample_rate: int = config.SAMPLE_RATE) -> None:
        try:
            from psychopy import sound
        except Exception as exc:
            raise RuntimeError(
                "psychopy.sound unavailable (no audio backend installed). "
                "Run with emulate_audio=True or use SilentAudio for testing."
            ) from exc
        self._sound_mod = sound
        self._sample_rate = sample_rate
        self._sound = None
        self._buffer_id: int | None = None

    def _sound_for(self, buffer: np.ndarray):
        # the session buffer never changes, so build the Sound once
        if self._sound is None or self._buffer_id != id(buffer):
            self._sound = self._sound_mod.Sound(
                value=np.asarray(buffer, dtype=np.float32),
                sampleRate=self._sample_rate,
                stereo=False,
                autoLog=False,
            )
            self._buffer_id = id(buffer)
        return self._sound

    def play(self, buffer: np.ndarray) -> None:
        snd = self._sound_for(buffer)
        snd.stop()
        snd.play()

    def stop(self) -> None:
        if self._sound is not None:
            self._sound.stop()


class SilentAudio:
    """Counts plays and stops; never opens an audio device."""

    def __init__(self) -> None:
        self.n_played = 0
        self.n_stopped = 0
        self.playing = False

    def play(self, buffer: np.ndarray) -> None:
        self.n_played += 1
        self.playing = True

    def stop(self) -> None:
        self.n_stopped += 1
        self.playing = False


def make_output(emulate: bool, sample_rate: int = config.SAMPLE_RATE) -> AudioOutput:
    """Return SilentAudio when emulating, PsychopyAudio otherwise."""
    if emulate:
        return SilentAudio()
    return PsychopyAudio(sample_rate)
