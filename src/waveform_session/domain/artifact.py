from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Provenance(Enum):
    IMPORTED = "imported"
    SESSION_TEMP = "session_temp"


@dataclass(frozen=True)
class ArtifactRef:
    """
    Location of an audio file plus where it came from.
    Only SESSION_TEMP artifacts may ever be deleted by the edit history.
    """
    path: Path
    provenance: Provenance = Provenance.IMPORTED

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))

    @classmethod
    def imported(cls, path: Path | str) -> "ArtifactRef":
        return cls(Path(path), Provenance.IMPORTED)

    @property
    def is_temporary(self) -> bool:
        return self.provenance is Provenance.SESSION_TEMP

    @property
    def name(self) -> str:
        return self.path.name
