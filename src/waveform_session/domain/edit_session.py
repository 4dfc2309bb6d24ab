from typing import Iterable

import numpy as np

from waveform_session.domain.artifact import ArtifactRef
from waveform_session.domain.edit_snapshot import EditSnapshot
from waveform_session.domain.marker import Marker, sorted_by_time


class EditSession:
    """
    Live, not-yet-snapshotted editing state for one recording.
    Holds the current audio artifact, its duration, markers and selection.
    """

    def __init__(
        self,
        artifact: ArtifactRef,
        duration: float,
        markers: Iterable[Marker] = (),
    ):
        self.artifact = artifact
        self.duration = max(0.0, float(duration))
        self.markers: list[Marker] = sorted_by_time(markers)
        self.selection_start = 0.0
        self.selection_end = self.duration

    def set_selection(self, start: float, end: float) -> None:
        lo, hi = sorted((float(start), float(end)))
        self.selection_start = float(np.clip(lo, 0.0, self.duration))
        self.selection_end = float(np.clip(hi, 0.0, self.duration))

    def select_all(self) -> None:
        self.set_selection(0.0, self.duration)

    @property
    def has_selection(self) -> bool:
        return self.selection_end > self.selection_start

    def add_marker(self, time: float, label: str | None = None) -> Marker:
        marker = Marker(time=float(np.clip(time, 0.0, self.duration)), label=label)
        self.markers = sorted_by_time([*self.markers, marker])
        return marker

    def remove_marker(self, marker: Marker) -> bool:
        remaining = [m for m in self.markers if m.id != marker.id]
        if len(remaining) == len(self.markers):
            return False
        self.markers = remaining
        return True

    def snapshot(self, label: str) -> EditSnapshot:
        return EditSnapshot(
            artifact=self.artifact,
            total_duration=self.duration,
            markers=tuple(self.markers),
            selection_start=self.selection_start,
            selection_end=self.selection_end,
            label=label,
        )

    def restore(self, snapshot: EditSnapshot) -> None:
        self.artifact = snapshot.artifact
        self.duration = snapshot.total_duration
        self.markers = list(snapshot.markers)
        self.selection_start = snapshot.selection_start
        self.selection_end = snapshot.selection_end
