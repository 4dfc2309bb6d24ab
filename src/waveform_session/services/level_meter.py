from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable

import numpy as np

from waveform_session.domain.artifact import ArtifactRef
from waveform_session.domain.errors import DecodeFailure
from waveform_session.domain.ownership import OwnerThread
from waveform_session.domain.settings import LevelMeterSettings
from waveform_session.services.audio_file_service import AudioFileService
from waveform_session.utils.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LevelReading:
    level_db: float
    below_threshold: bool


class LevelMeter:
    """
    Smoothed RMS loudness of an in-memory buffer at an arbitrary play-head time.

    The threshold state is a two-state machine with hysteresis: leaving
    "below" needs level >= threshold + margin, entering it needs
    level <= threshold - margin.
    """

    def __init__(
        self,
        audio_service: AudioFileService,
        settings: LevelMeterSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.audio_service = audio_service
        self.settings = settings or LevelMeterSettings()
        self._clock = clock
        self._owner = OwnerThread("LevelMeter")
        self._buffer: np.ndarray | None = None
        self._sample_rate = 0
        self._duration = 0.0
        self._smoothed = 0.0
        self._level_db = self.settings.floor_db
        self._below = True
        self._last_update: float | None = None

    # State

    @property
    def current_level_db(self) -> float:
        return self._level_db

    @property
    def below_threshold(self) -> bool:
        return self._below

    @property
    def smoothed_power(self) -> float:
        return self._smoothed

    @property
    def is_loaded(self) -> bool:
        return self._buffer is not None

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def threshold_db(self) -> float:
        return self.settings.threshold_db

    @threshold_db.setter
    def threshold_db(self, value: float) -> None:
        self.settings = self.settings.with_changes(threshold_db=value)

    @property
    def hysteresis_db(self) -> float:
        return self.settings.hysteresis_db

    @hysteresis_db.setter
    def hysteresis_db(self, value: float) -> None:
        self.settings = self.settings.with_changes(hysteresis_db=value)

    def reading(self) -> LevelReading:
        return LevelReading(self._level_db, self._below)

    # Lifecycle

    def load(self, source: ArtifactRef) -> None:
        """Decode the whole source into memory. On failure the meter is left empty."""
        self._owner.check()
        try:
            data, sample_rate = self.audio_service.read_samples(source)
        except DecodeFailure:
            self.clear()
            raise
        self.load_buffer(data, sample_rate)
        logger.debug("Level meter loaded %s (%.2fs)", source.name, self._duration)

    def load_buffer(self, data: np.ndarray, sample_rate: int) -> None:
        self._owner.check()
        buffer = np.asarray(data, dtype=np.float32)
        if buffer.ndim == 1:
            buffer = buffer.reshape(-1, 1)
        self._buffer = buffer
        self._sample_rate = int(sample_rate)
        self._duration = buffer.shape[0] / sample_rate if sample_rate > 0 else 0.0
        self._last_update = None
        self.reset()

    def reset(self) -> None:
        """Back to floor level and Below, keeping the buffer."""
        self._owner.check()
        self._level_db = self.settings.floor_db
        self._below = True
        self._smoothed = 0.0

    def clear(self) -> None:
        self._owner.check()
        self._buffer = None
        self._sample_rate = 0
        self._duration = 0.0
        self._last_update = None
        self.reset()

    # Metering

    def update(self, at_time: float) -> LevelReading:
        """Meter the window centred on at_time, at most max_update_hz times a second."""
        self._owner.check()
        now = self._clock()
        if self._last_update is not None and now - self._last_update < self.settings.min_update_interval:
            return self.reading()
        self._last_update = now

        if self._buffer is None or self._duration <= 0:
            return self.reading()

        total_frames = self._buffer.shape[0]
        window_frames = int(self._sample_rate * self.settings.window_seconds)
        center = int(at_time * self._sample_rate)
        start = max(0, center - window_frames // 2)
        end = min(total_frames, start + window_frames)

        if end <= start:
            self._level_db = self.settings.floor_db
            self._below = True
            return self.reading()

        instant = self.window_rms(self._buffer[start:end])
        alpha = self.settings.smoothing_factor
        self._smoothed = alpha * instant + (1.0 - alpha) * self._smoothed
        self.track_threshold(self.to_dbfs(self._smoothed))
        return self.reading()

    def track_threshold(self, level_db: float) -> bool:
        """Feed a level through the hysteresis state machine and return below_threshold."""
        self._level_db = level_db
        threshold = self.settings.threshold_db
        margin = self.settings.hysteresis_db
        if self._below:
            if level_db >= threshold + margin:
                self._below = False
        elif level_db <= threshold - margin:
            self._below = True
        return self._below

    @staticmethod
    def window_rms(window: np.ndarray) -> float:
        """RMS of the loudest channel in a (frames, channels) window."""
        if window.size == 0:
            return 0.0
        mean_square = np.mean(np.square(window, dtype=np.float64), axis=0)
        return float(np.max(np.sqrt(mean_square)))

    def to_dbfs(self, amplitude: float) -> float:
        floor = self.settings.floor_db
        if amplitude <= self.settings.epsilon:
            return floor
        return float(min(0.0, max(floor, 20.0 * math.log10(amplitude))))
