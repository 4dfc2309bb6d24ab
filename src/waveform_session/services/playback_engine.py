import time
from typing import Callable

import numpy as np
import sounddevice as sd

from waveform_session.utils.log import get_logger

logger = get_logger(__name__)


class PlaybackEngine:
    """
    Plays an in-memory buffer through sounddevice and tracks the play-head.
    Seeking restarts the output stream from the new frame.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data = np.zeros((0, 1), dtype=np.float32)
        self._sample_rate = 0
        self._start_offset = 0.0
        self._started_at: float | None = None

    @property
    def duration(self) -> float:
        if self._sample_rate <= 0:
            return 0.0
        return self._data.shape[0] / self._sample_rate

    def play(self, data: np.ndarray, sample_rate: int, start_at: float = 0.0) -> None:
        arr = np.asarray(data, dtype=np.float32)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.shape[0] == 0 or sample_rate <= 0:
            return
        self._data = arr
        self._sample_rate = int(sample_rate)
        self._start_from(start_at)

    def seek(self, seconds: float, fade: float | None = None) -> None:
        """Jump to `seconds`, optionally ramping the first `fade` seconds in to avoid clicks."""
        if self._sample_rate <= 0:
            return
        if self.is_playing():
            sd.stop()
        self._start_from(seconds, fade)

    def _start_from(self, seconds: float, fade: float | None = None) -> None:
        total = self._data.shape[0]
        frame = int(np.clip(seconds * self._sample_rate, 0, total))
        chunk = self._data[frame:]
        if chunk.shape[0] == 0:
            self._started_at = None
            self._start_offset = self.duration
            return
        if fade:
            ramp_len = min(chunk.shape[0], int(fade * self._sample_rate))
            if ramp_len > 0:
                chunk = chunk.copy()
                chunk[:ramp_len] *= np.linspace(0.0, 1.0, ramp_len, dtype=np.float32)[:, None]
        sd.play(chunk, samplerate=self._sample_rate)
        self._start_offset = frame / self._sample_rate
        self._started_at = self._clock()
        logger.debug("Playback from %.2fs", self._start_offset)

    def stop(self) -> None:
        if self._started_at is not None:
            self._start_offset = self.position()
        sd.stop()
        self._started_at = None

    def is_playing(self) -> bool:
        return self._started_at is not None and self.position() < self.duration

    def position(self) -> float:
        """Current play-head in seconds."""
        if self._started_at is None:
            return self._start_offset
        elapsed = self._clock() - self._started_at
        return min(self.duration, self._start_offset + elapsed)
