from __future__ import annotations

import asyncio
import bisect
import time
from enum import Enum
from typing import Any, Callable, Protocol, Sequence

from waveform_session.domain.artifact import ArtifactRef
from waveform_session.domain.errors import AnalysisFailure, WaveformSessionError
from waveform_session.domain.ownership import OwnerThread
from waveform_session.domain.settings import SkipSilenceSettings
from waveform_session.domain.silence_range import SilenceRange
from waveform_session.utils.log import get_logger

logger = get_logger(__name__)

# Position and wall-clock windows that must both hold to suppress a repeat skip.
DEBOUNCE_POSITION_SECONDS = 0.1
DEBOUNCE_WALL_SECONDS = 0.5
# A play-head this close to a range's end is treated as already past it.
END_GUARD_SECONDS = 0.05
# Auto threshold sits this far above the estimated noise floor.
AUTO_THRESHOLD_HEADROOM_DB = 15.0
AUTO_THRESHOLD_MIN_DB = -70.0
AUTO_THRESHOLD_MAX_DB = -20.0


class SilenceAnalyzer(Protocol):
    async def detect_silence(
        self, source: ArtifactRef, threshold_db: float, min_duration: float
    ) -> list[SilenceRange]: ...

    async def estimate_noise_floor(self, source: ArtifactRef) -> float | None: ...

    def clear_cache(self, source: ArtifactRef) -> None: ...


class SkipState(Enum):
    DISABLED = "disabled"
    NEEDS_ANALYSIS = "needs_analysis"
    ANALYZING = "analyzing"
    READY = "ready"


class SilenceSkipController:
    """
    Decides, per play-head position, whether playback should jump past silence.

    Silence ranges come from an external analyzer and are assumed sorted by
    start and non-overlapping. Analysis runs as an asyncio task; at most one
    task runs per source, and a result for a source that is no longer
    current is dropped instead of committed.
    """

    def __init__(
        self,
        analyzer: SilenceAnalyzer,
        settings: SkipSilenceSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.analyzer = analyzer
        self._settings = settings or SkipSilenceSettings()
        self._clock = clock
        self._owner = OwnerThread("SilenceSkipController")
        self._enabled = False
        self._ranges: list[SilenceRange] = []
        self._starts: list[float] = []
        self._analyzed_source: ArtifactRef | None = None
        self._failed_source: ArtifactRef | None = None
        self._pending_source: ArtifactRef | None = None
        self._pending_settings: SkipSilenceSettings | None = None
        self._task: asyncio.Task | None = None
        self._last_error: WaveformSessionError | None = None
        self._last_skip_time = -1.0
        self._last_skip_origin = -1.0
        self._last_skip_at = float("-inf")

    # Settings and state

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @is_enabled.setter
    def is_enabled(self, value: bool) -> None:
        self._owner.check()
        self._enabled = bool(value)

    @property
    def settings(self) -> SkipSilenceSettings:
        return self._settings

    @settings.setter
    def settings(self, value: SkipSilenceSettings) -> None:
        self._owner.check()
        if value == self._settings:
            return
        self._settings = value
        # ranges were computed with the old threshold/min duration
        self._set_ranges([])
        self._failed_source = None
        logger.debug("Skip silence settings changed, analysis required")

    def update_settings(self, **changes: Any) -> SkipSilenceSettings:
        self.settings = self._settings.with_changes(**changes)
        return self._settings

    def preferences(self) -> dict[str, Any]:
        return {"enabled": self._enabled, **self._settings.to_preferences()}

    def apply_preferences(self, values: dict[str, Any]) -> None:
        self.settings = SkipSilenceSettings.from_preferences(values)
        if "enabled" in values:
            self.is_enabled = bool(values["enabled"])

    @property
    def analyzing(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def state(self) -> SkipState:
        if not self._enabled:
            return SkipState.DISABLED
        if self.analyzing:
            return SkipState.ANALYZING
        if self._analyzed_source is None or not self._ranges:
            return SkipState.NEEDS_ANALYSIS
        return SkipState.READY

    @property
    def ranges(self) -> list[SilenceRange]:
        return list(self._ranges)

    @property
    def analyzed_source(self) -> ArtifactRef | None:
        return self._analyzed_source

    @property
    def last_error(self) -> WaveformSessionError | None:
        return self._last_error

    @property
    def total_silence_duration(self) -> float:
        return sum(r.duration for r in self._ranges)

    @property
    def silence_segment_count(self) -> int:
        return len(self._ranges)

    # Analysis

    async def analyze(self, source: ArtifactRef) -> list[SilenceRange]:
        """
        Find silence ranges for source, reusing cached results when possible.

        Raises AnalysisFailure when the analyzer fails; the controller is
        left with no ranges and only reanalyze() retries that source.
        """
        self._owner.check()
        if source == self._analyzed_source and (self._ranges or source == self._failed_source):
            return list(self._ranges)

        if (
            self.analyzing
            and self._pending_source == source
            and self._pending_settings == self._settings
        ):
            return await asyncio.shield(self._task)

        if self.analyzing:
            logger.info("Abandoning silence analysis of %s", self._pending_source.name)

        self._pending_source = source
        self._pending_settings = self._settings
        self._task = asyncio.ensure_future(self._run_analysis(source, self._settings))
        return await asyncio.shield(self._task)

    async def reanalyze(self) -> list[SilenceRange]:
        self._owner.check()
        source = self._analyzed_source
        if source is None:
            return []
        self._set_ranges([])
        self._failed_source = None
        self.analyzer.clear_cache(source)
        return await self.analyze(source)

    async def _run_analysis(
        self,
        source: ArtifactRef,
        settings: SkipSilenceSettings,
    ) -> list[SilenceRange]:
        logger.info("Analyzing silence for %s", source.name)
        try:
            threshold = await self._resolve_threshold(source, settings)
            ranges = await self.analyzer.detect_silence(
                source, threshold, settings.min_silence_duration
            )
            ranges = self._validate(source, ranges)
        except Exception as exc:
            if self._is_stale(source, settings):
                logger.debug("Ignoring failed analysis of abandoned source %s", source.name)
                return []
            if isinstance(exc, AnalysisFailure):
                self._commit_failure(source, exc)
                raise
            failure = AnalysisFailure(source.path, str(exc) or type(exc).__name__)
            self._commit_failure(source, failure)
            raise failure from exc

        if self._is_stale(source, settings):
            logger.debug("Discarding stale silence analysis for %s", source.name)
            return []

        self._analyzed_source = source
        self._failed_source = None
        self._last_error = None
        self._set_ranges(ranges)
        logger.info(
            "Found %d silence ranges, total: %.1fs",
            len(ranges),
            self.total_silence_duration,
        )
        return list(ranges)

    async def _resolve_threshold(self, source: ArtifactRef, settings: SkipSilenceSettings) -> float:
        threshold = settings.threshold_db
        if not settings.auto_threshold:
            return threshold
        noise_floor = await self.analyzer.estimate_noise_floor(source)
        if noise_floor is None:
            logger.warning(
                "Auto-threshold: could not estimate noise floor, using manual threshold %.1fdB",
                threshold,
            )
            return threshold
        threshold = noise_floor + AUTO_THRESHOLD_HEADROOM_DB
        threshold = max(AUTO_THRESHOLD_MIN_DB, min(AUTO_THRESHOLD_MAX_DB, threshold))
        logger.info("Auto-threshold: noise floor=%.1fdB, threshold=%.1fdB", noise_floor, threshold)
        return threshold

    def _is_stale(self, source: ArtifactRef, settings: SkipSilenceSettings) -> bool:
        return self._pending_source != source or settings != self._settings

    @staticmethod
    def _validate(source: ArtifactRef, ranges: Sequence[SilenceRange]) -> list[SilenceRange]:
        if ranges is None:
            raise AnalysisFailure(source.path, "analyzer returned no result")
        result = list(ranges)
        for item in result:
            if not isinstance(item, SilenceRange):
                raise AnalysisFailure(source.path, f"malformed silence range {item!r}")
        return result

    def _commit_failure(self, source: ArtifactRef, exc: AnalysisFailure) -> None:
        logger.error("Silence analysis failed: %s", exc.reason)
        self._set_ranges([])
        self._analyzed_source = source
        self._failed_source = source
        self._last_error = exc

    def _set_ranges(self, ranges: list[SilenceRange]) -> None:
        self._ranges = list(ranges)
        self._starts = [r.start for r in self._ranges]

    # Playback

    def should_skip(self, current_time: float) -> float | None:
        """Return the time to seek to if current_time sits inside silence."""
        if not self._enabled or self.analyzing or not self._ranges:
            return None

        now = self._clock()
        if self._recently_skipped(current_time, now):
            return None

        # last range starting at or before current_time is the only candidate
        index = bisect.bisect_right(self._starts, current_time) - 1
        if index < 0:
            return None
        silence = self._ranges[index]
        if silence.start <= current_time < silence.end - END_GUARD_SECONDS:
            self._last_skip_time = silence.end
            self._last_skip_origin = current_time
            self._last_skip_at = now
            logger.debug("Skipping silence: %.2f -> %.2f", current_time, silence.end)
            return silence.end
        return None

    def _recently_skipped(self, current_time: float, now: float) -> bool:
        # the play-head may still report the old position right after a seek
        near_last_skip = min(
            abs(current_time - self._last_skip_time),
            abs(current_time - self._last_skip_origin),
        ) < DEBOUNCE_POSITION_SECONDS
        return near_last_skip and now - self._last_skip_at < DEBOUNCE_WALL_SECONDS

    def clear(self) -> None:
        self._owner.check()
        self._set_ranges([])
        self._analyzed_source = None
        self._failed_source = None
        self._pending_source = None
        self._pending_settings = None
        self._task = None
        self._last_error = None
        self._last_skip_time = -1.0
        self._last_skip_origin = -1.0
        self._last_skip_at = float("-inf")

    def reset(self, source: ArtifactRef | None) -> None:
        """Drop cached state when playback switches to a different source."""
        self._owner.check()
        if source != self._analyzed_source and source != self._pending_source:
            self.clear()
