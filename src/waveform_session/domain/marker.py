from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable
from uuid import UUID, uuid4

from waveform_session.domain.silence_range import SilenceRange


@dataclass(frozen=True)
class Marker:
    """
    A labelled point in time within a recording.
    The id survives every timeline transform; time never goes below zero.
    """
    time: float
    label: str | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "time", max(0.0, float(self.time)))

    def adjusted(self, offset: float) -> Marker:
        return replace(self, time=self.time + offset)

    def is_within(self, start: float, end: float) -> bool:
        return start <= self.time <= end


def within(markers: Iterable[Marker], start: float, end: float) -> list[Marker]:
    return [m for m in markers if m.is_within(start, end)]


def shift_back(markers: Iterable[Marker], offset: float) -> list[Marker]:
    """Move every marker earlier by offset, clamping at zero."""
    return [m.adjusted(-offset) for m in markers]


def after_trim(markers: Iterable[Marker], keep_start: float, keep_end: float) -> list[Marker]:
    """Keep only markers inside [keep_start, keep_end] and renumber them from zero."""
    return [m.adjusted(-keep_start) for m in markers if m.is_within(keep_start, keep_end)]


def after_cut(markers: Iterable[Marker], remove_start: float, remove_end: float) -> list[Marker]:
    """
    Remap markers after [remove_start, remove_end] has been excised.

    Markers exactly on either edge count as inside the cut and are dropped.
    Markers after the cut move back by the excised duration.
    """
    cut_duration = remove_end - remove_start
    result: list[Marker] = []
    for marker in markers:
        if remove_start <= marker.time <= remove_end:
            continue
        if marker.time > remove_end:
            result.append(marker.adjusted(-cut_duration))
        else:
            result.append(marker)
    return result


def after_removing_silence(
    markers: Iterable[Marker],
    ranges: Iterable[SilenceRange],
    padding: float,
) -> list[Marker]:
    """
    Remap markers after several silence ranges were removed in one pass.

    Each range keeps `padding` seconds of silence on both sides, so only the
    narrowed interior is removed. Ranges are expected sorted by start.
    """
    removed: list[tuple[float, float]] = []
    for silence in ranges:
        start = silence.start + padding
        end = max(start, silence.end - padding)
        if end > start:
            removed.append((start, end))

    if not removed:
        return list(markers)

    result: list[Marker] = []
    for marker in markers:
        shift = 0.0
        dropped = False
        for start, end in removed:
            if start <= marker.time <= end:
                dropped = True
                break
            if marker.time > end:
                shift += end - start
        if not dropped:
            result.append(marker.adjusted(-shift))
    return result


def sorted_by_time(markers: Iterable[Marker]) -> list[Marker]:
    # sorted() is stable, so markers sharing a timestamp keep their order
    return sorted(markers, key=lambda m: m.time)
