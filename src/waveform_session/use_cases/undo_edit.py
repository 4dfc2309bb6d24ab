from waveform_session.domain.edit_session import EditSession
from waveform_session.domain.edit_snapshot import EditSnapshot
from waveform_session.services.edit_history import EditHistoryStore


class UndoEdit:
    """Use case for stepping back one edit, keeping the current state redoable."""

    def __init__(self, session: EditSession, history: EditHistoryStore):
        self.session = session
        self.history = history

    def execute(self) -> EditSnapshot | None:
        snapshot = self.history.pop_undo()
        if snapshot is None:
            return None
        current = self.session.snapshot(snapshot.label)
        self.history.push_redo(current, keep=snapshot.artifact)
        self.session.restore(snapshot)
        return snapshot
