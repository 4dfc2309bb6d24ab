from waveform_session.domain.edit_session import EditSession
from waveform_session.domain.edit_snapshot import EditSnapshot
from waveform_session.domain.marker import after_cut
from waveform_session.services.audio_file_service import AudioFileService
from waveform_session.services.edit_history import EditHistoryStore


class CutSelection:
    """Use case for removing the selected range from the working audio."""

    def __init__(self, session: EditSession, history: EditHistoryStore, audio_service: AudioFileService):
        self.session = session
        self.history = history
        self.audio_service = audio_service

    def execute(self, label: str = "Cut") -> EditSnapshot:
        session = self.session
        if not session.has_selection:
            raise ValueError("Select a range to cut first.")

        start, end = session.selection_start, session.selection_end
        before = session.snapshot(label)
        result = self.audio_service.cut(session.artifact, start, end)
        # history changes only once the edited file exists
        self.history.push_undo(before)

        session.artifact = result.artifact
        session.duration = result.duration
        session.markers = after_cut(session.markers, start, end)
        session.set_selection(start, start)
        return before
