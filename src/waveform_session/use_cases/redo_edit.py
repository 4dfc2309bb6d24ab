from waveform_session.domain.edit_session import EditSession
from waveform_session.domain.edit_snapshot import EditSnapshot
from waveform_session.services.edit_history import EditHistoryStore


class RedoEdit:
    """Use case for re-applying the most recently undone edit."""

    def __init__(self, session: EditSession, history: EditHistoryStore):
        self.session = session
        self.history = history

    def execute(self) -> EditSnapshot | None:
        snapshot = self.history.pop_redo()
        if snapshot is None:
            return None
        current = self.session.snapshot(snapshot.label)
        self.history.push_undo(current, invalidate_redo=False, keep=snapshot.artifact)
        self.session.restore(snapshot)
        return snapshot
