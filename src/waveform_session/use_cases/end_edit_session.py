from waveform_session.domain.artifact import ArtifactRef
from waveform_session.domain.edit_session import EditSession
from waveform_session.services.edit_history import EditHistoryStore


class EndEditSession:
    """Use case for leaving edit mode, either keeping or discarding the edits."""

    def __init__(self, session: EditSession, history: EditHistoryStore):
        self.session = session
        self.history = history

    def execute(self, commit: bool = True) -> ArtifactRef:
        """
        Clear the history and return the artifact that should be kept.

        On commit the live artifact survives. On discard the live state is
        handed to the history and the session rolled back to the oldest
        snapshot, so every edited file is released.
        """
        if not commit:
            undo = self.history.undo_snapshots()
            if undo:
                self.history.push_redo(self.session.snapshot("Discard"))
                self.session.restore(undo[0])
        keep = self.session.artifact
        self.history.clear(keep=keep)
        return keep
