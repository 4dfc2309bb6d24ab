from __future__ import annotations

import asyncio
from pathlib import Path

import numpy as np

from waveform_session.domain.artifact import ArtifactRef
from waveform_session.domain.errors import AnalysisFailure, DecodeFailure
from waveform_session.domain.silence_range import SilenceRange
from waveform_session.services.audio_file_service import AudioFileService
from waveform_session.utils.log import get_logger

logger = get_logger(__name__)

ANALYSIS_WINDOW_SECONDS = 0.01
NOISE_FLOOR_WINDOW_SECONDS = 0.02
NOISE_FLOOR_SPAN_SECONDS = 10.0
FLOOR_DB = -96.0


class SilenceDetector:
    """
    Finds silent spans in an audio source.

    detect_silence() runs the numpy scan in a worker thread so the caller's
    event loop stays responsive. Results are cached per source and settings.
    """

    def __init__(self, audio_service: AudioFileService):
        self.audio_service = audio_service
        self._cache: dict[tuple[Path, float, float], list[SilenceRange]] = {}

    async def detect_silence(
        self,
        source: ArtifactRef,
        threshold_db: float,
        min_duration: float,
    ) -> list[SilenceRange]:
        key = (source.path, float(threshold_db), float(min_duration))
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        logger.info("Detecting silence for %s", source.name)
        try:
            data, sample_rate = await asyncio.to_thread(self.audio_service.read_samples, source)
        except DecodeFailure as exc:
            raise AnalysisFailure(source.path, exc.reason) from exc

        ranges = await asyncio.to_thread(
            self.find_silent_ranges, data, sample_rate, threshold_db, min_duration
        )
        self._cache[key] = ranges
        logger.info("Detected %d silence ranges in %s", len(ranges), source.name)
        return list(ranges)

    def clear_cache(self, source: ArtifactRef) -> None:
        for key in [k for k in self._cache if k[0] == source.path]:
            del self._cache[key]

    def clear_all_caches(self) -> None:
        self._cache.clear()

    @staticmethod
    def find_silent_ranges(
        data: np.ndarray,
        sample_rate: int,
        threshold_db: float,
        min_duration: float,
    ) -> list[SilenceRange]:
        """Scan 10 ms RMS windows of the first channel for runs below the threshold."""
        samples = np.asarray(data, dtype=np.float32)
        if samples.ndim == 2:
            samples = samples[:, 0]
        if samples.size == 0 or sample_rate <= 0:
            return []

        window = max(1, int(sample_rate * ANALYSIS_WINDOW_SECONDS))
        window_count = samples.size // window
        duration = samples.size / sample_rate
        if window_count == 0:
            return []

        frames = samples[: window_count * window].reshape(window_count, window)
        rms = np.sqrt(np.mean(frames.astype(np.float64) ** 2, axis=1))
        silent = rms < 10.0 ** (threshold_db / 20.0)

        ranges: list[SilenceRange] = []
        silence_start: float | None = None
        for index, is_silent in enumerate(silent):
            window_time = index * window / sample_rate
            if is_silent:
                if silence_start is None:
                    silence_start = window_time
            elif silence_start is not None:
                if window_time - silence_start >= min_duration:
                    ranges.append(SilenceRange(silence_start, window_time))
                silence_start = None

        if silence_start is not None and duration - silence_start >= min_duration:
            ranges.append(SilenceRange(silence_start, duration))
        return ranges

    async def estimate_noise_floor(self, source: ArtifactRef) -> float | None:
        """10th percentile of 20 ms RMS levels over the first ten seconds, in dBFS."""
        try:
            data, sample_rate = await asyncio.to_thread(self.audio_service.read_samples, source)
        except DecodeFailure as exc:
            logger.error("Noise floor estimation failed: %s", exc)
            return None
        return self.noise_floor_db(data, sample_rate)

    @staticmethod
    def noise_floor_db(data: np.ndarray, sample_rate: int) -> float | None:
        samples = np.asarray(data, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples.reshape(-1, 1)
        if sample_rate <= 0 or samples.shape[1] == 0:
            return None

        max_frames = min(samples.shape[0], int(sample_rate * NOISE_FLOOR_SPAN_SECONDS))
        window = int(sample_rate * NOISE_FLOOR_WINDOW_SECONDS)
        if window <= 0 or max_frames < window:
            return None

        count = max_frames // window
        frames = samples[: count * window].reshape(count, window, samples.shape[1])
        channel_rms = np.sqrt(np.mean(frames.astype(np.float64) ** 2, axis=1))
        loudest = channel_rms.max(axis=1)
        levels = np.where(loudest > 1e-6, 20.0 * np.log10(np.maximum(loudest, 1e-12)), FLOOR_DB)
        levels.sort()
        index = max(0, min(levels.size - 1, levels.size // 10))
        noise_floor = float(levels[index])
        logger.debug("Noise floor estimation: %d windows, p10=%.1fdB", levels.size, noise_floor)
        return noise_floor
