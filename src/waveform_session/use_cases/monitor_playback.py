from dataclasses import dataclass

from waveform_session.services.level_meter import LevelMeter, LevelReading
from waveform_session.services.skip_silence_controller import SilenceSkipController


@dataclass(frozen=True)
class PlaybackTick:
    position: float
    level: LevelReading
    skipped_to: float | None = None


class MonitorPlayback:
    """
    Use case driven by the playback timer: meters the play-head and jumps
    past silence when the skip controller asks for it.
    """

    def __init__(self, engine, meter: LevelMeter, skip_controller: SilenceSkipController):
        self.engine = engine
        self.meter = meter
        self.skip_controller = skip_controller

    def tick(self) -> PlaybackTick:
        position = self.engine.position()
        level = self.meter.update(position)

        target = self.skip_controller.should_skip(position)
        if target is None:
            return PlaybackTick(position=position, level=level)

        settings = self.skip_controller.settings
        fade = settings.fade_duration if settings.enable_fade else None
        self.engine.seek(target, fade=fade)
        return PlaybackTick(position=position, level=level, skipped_to=target)
