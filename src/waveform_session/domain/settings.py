"""Configuration models for the editing session components."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field


class PreferencesModel(BaseModel):
    """Settings that round-trip through the host application's key/value store."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    def to_preferences(self) -> dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_preferences(cls, values: Mapping[str, Any]):
        return cls.model_validate(dict(values))

    def with_changes(self, **changes: Any):
        """Return a validated copy with the given fields replaced."""
        return type(self).model_validate({**self.model_dump(), **changes})


class EditHistorySettings(PreferencesModel):
    """Configuration for the undo/redo history."""

    max_depth: int = Field(default=20, ge=1, le=500)


class LevelMeterSettings(PreferencesModel):
    """Configuration for the RMS level meter."""

    threshold_db: float = Field(default=-45.0, ge=-96.0, le=0.0)
    hysteresis_db: float = Field(default=2.0, ge=0.0, le=20.0)
    smoothing_factor: float = Field(default=0.3, gt=0.0, le=1.0)
    window_seconds: float = Field(default=0.03, gt=0.0, le=1.0)
    max_update_hz: float = Field(default=15.0, gt=0.0, le=240.0)
    floor_db: float = Field(default=-96.0, le=0.0)
    epsilon: float = Field(default=1e-6, gt=0.0)

    @property
    def min_update_interval(self) -> float:
        return 1.0 / self.max_update_hz


class SkipSilenceSettings(PreferencesModel):
    """Configuration for skipping silence during playback."""

    threshold_db: float = Field(default=-55.0, ge=-96.0, le=0.0)
    auto_threshold: bool = False
    min_silence_duration: float = Field(default=0.5, ge=0.05, le=10.0)
    enable_fade: bool = True
    fade_duration: float = Field(default=0.02, ge=0.0, le=0.5)
