from dataclasses import dataclass

from waveform_session.domain.artifact import ArtifactRef
from waveform_session.domain.marker import Marker


@dataclass(frozen=True)
class EditSnapshot:
    """
    Immutable record of the editing state at one point in history.
    `label` names the action ("Trim", "Cut", ...) for undo/redo menus.
    """
    artifact: ArtifactRef
    total_duration: float
    markers: tuple[Marker, ...]
    selection_start: float
    selection_end: float
    label: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "markers", tuple(self.markers))
