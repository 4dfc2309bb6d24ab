from __future__ import annotations

from typing import Iterable

from waveform_session.domain.artifact import ArtifactRef
from waveform_session.domain.edit_snapshot import EditSnapshot
from waveform_session.domain.ownership import OwnerThread
from waveform_session.domain.settings import EditHistorySettings
from waveform_session.services.artifact_workspace import ArtifactWorkspace
from waveform_session.utils.log import get_logger

logger = get_logger(__name__)


class EditHistoryStore:
    """
    Linear undo/redo history for a waveform editing session.

    Each snapshot points at an audio artifact. The store is the single owner
    of temporary artifact lifetime: a session artifact is deleted as soon as
    no snapshot in either stack references it. Files the workspace did not
    issue (imported originals) are never deleted.

    Callers must push a snapshot of the live state before any path that can
    evict entries, so the live artifact is always referenced.
    """

    def __init__(
        self,
        workspace: ArtifactWorkspace,
        settings: EditHistorySettings | None = None,
    ):
        self.workspace = workspace
        self.settings = settings or EditHistorySettings()
        self._undo_stack: list[EditSnapshot] = []
        self._redo_stack: list[EditSnapshot] = []
        self._owner = OwnerThread("EditHistoryStore")

    @property
    def max_depth(self) -> int:
        return self.settings.max_depth

    # Queries

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_description(self) -> str | None:
        return self._undo_stack[-1].label if self._undo_stack else None

    @property
    def redo_description(self) -> str | None:
        return self._redo_stack[-1].label if self._redo_stack else None

    @property
    def undo_count(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_count(self) -> int:
        return len(self._redo_stack)

    def undo_snapshots(self) -> list[EditSnapshot]:
        return list(self._undo_stack)

    def redo_snapshots(self) -> list[EditSnapshot]:
        return list(self._redo_stack)

    def referenced_artifacts(self) -> set[ArtifactRef]:
        return {s.artifact for s in (*self._undo_stack, *self._redo_stack)}

    def is_referenced(self, artifact: ArtifactRef) -> bool:
        return any(s.artifact.path == artifact.path for s in (*self._undo_stack, *self._redo_stack))

    # Mutations

    def push_undo(
        self,
        snapshot: EditSnapshot,
        *,
        invalidate_redo: bool = True,
        keep: ArtifactRef | None = None,
    ) -> None:
        """
        Record the state before an edit.

        A new edit invalidates every redo entry. Redo itself passes
        invalidate_redo=False so the remaining redo steps survive.
        """
        self._owner.check()
        self._undo_stack.append(snapshot)
        self._release(self._evict_overflow(self._undo_stack), keep=keep)
        if invalidate_redo:
            self._clear_redo(keep=keep)

    def pop_undo(self) -> EditSnapshot | None:
        self._owner.check()
        return self._undo_stack.pop() if self._undo_stack else None

    def push_redo(self, snapshot: EditSnapshot, *, keep: ArtifactRef | None = None) -> None:
        self._owner.check()
        self._redo_stack.append(snapshot)
        self._release(self._evict_overflow(self._redo_stack), keep=keep)

    def pop_redo(self) -> EditSnapshot | None:
        self._owner.check()
        return self._redo_stack.pop() if self._redo_stack else None

    def clear(self, keep: ArtifactRef | None = None) -> None:
        """
        Drop all history and delete every session artifact it referenced.
        `keep` protects the artifact the live editing state still uses.
        """
        self._owner.check()
        dropped = [*self._undo_stack, *self._redo_stack]
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._release(dropped, keep=keep)

    def _clear_redo(self, keep: ArtifactRef | None = None) -> None:
        dropped = list(self._redo_stack)
        self._redo_stack.clear()
        self._release(dropped, keep=keep)

    def _evict_overflow(self, stack: list[EditSnapshot]) -> list[EditSnapshot]:
        evicted: list[EditSnapshot] = []
        while len(stack) > self.max_depth:
            evicted.append(stack.pop(0))
        return evicted

    def _release(self, snapshots: Iterable[EditSnapshot], keep: ArtifactRef | None = None) -> None:
        seen: set = set()
        for snapshot in snapshots:
            artifact = snapshot.artifact
            if artifact.path in seen:
                continue
            seen.add(artifact.path)
            if keep is not None and artifact.path == keep.path:
                continue
            if self.is_referenced(artifact):
                logger.debug("Keeping %s, still referenced by history", artifact.name)
                continue
            if not self.workspace.is_session_artifact(artifact):
                continue
            self.workspace.discard(artifact)
