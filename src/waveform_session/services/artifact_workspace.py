from __future__ import annotations

import itertools
import shutil
import tempfile
from datetime import datetime
from pathlib import Path

from waveform_session.domain.artifact import ArtifactRef, Provenance
from waveform_session.domain.errors import FileCleanupFailure
from waveform_session.utils.log import get_logger

logger = get_logger(__name__)


class ArtifactWorkspace:
    """
    Scratch directory holding the audio files produced by edits.

    Only references issued by new_artifact() are recognised as session
    artifacts, whatever provenance tag a caller puts on its own refs.
    """

    def __init__(self, root: Path | str | None = None, prefix: str = "waveform_session_"):
        if root is None:
            self.root = Path(tempfile.mkdtemp(prefix=prefix))
            self._owns_root = True
        else:
            self.root = Path(root)
            self.root.mkdir(parents=True, exist_ok=True)
            self._owns_root = False
        self._issued: set[Path] = set()
        self._counter = itertools.count(1)

    def new_artifact(self, source: ArtifactRef, tag: str = "") -> ArtifactRef:
        """Reserve a fresh file path derived from the source name."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        stem = source.path.stem.split("_edited_")[0]
        suffix = source.path.suffix or ".wav"
        parts = [stem, "edited", timestamp]
        if tag:
            parts.append(tag)
        parts.append(f"{next(self._counter):04d}")
        path = self.root / ("_".join(parts) + suffix)
        self._issued.add(path)
        return ArtifactRef(path, Provenance.SESSION_TEMP)

    def is_session_artifact(self, ref: ArtifactRef) -> bool:
        return ref.is_temporary and ref.path in self._issued

    def discard(self, ref: ArtifactRef) -> bool:
        """Best-effort delete of a session artifact. Returns True if a file was removed."""
        if not self.is_session_artifact(ref):
            logger.debug("Refusing to delete non-session artifact %s", ref.path)
            return False
        try:
            self._delete(ref.path)
        except FileCleanupFailure as exc:
            logger.warning("%s", exc)
            return False
        finally:
            self._issued.discard(ref.path)
        logger.debug("Deleted orphaned artifact %s", ref.name)
        return True

    def _delete(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            raise FileCleanupFailure(path, "already gone") from None
        except OSError as exc:
            raise FileCleanupFailure(path, str(exc)) from exc

    def close(self) -> None:
        """Remove the scratch directory if this workspace created it."""
        self._issued.clear()
        if self._owns_root:
            shutil.rmtree(self.root, ignore_errors=True)
