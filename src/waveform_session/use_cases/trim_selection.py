from waveform_session.domain.edit_session import EditSession
from waveform_session.domain.marker import after_trim
from waveform_session.domain.edit_snapshot import EditSnapshot
from waveform_session.services.audio_file_service import AudioFileService
from waveform_session.services.edit_history import EditHistoryStore


class TrimSelection:
    """Use case for keeping only the selected range of the working audio."""

    def __init__(self, session: EditSession, history: EditHistoryStore, audio_service: AudioFileService):
        self.session = session
        self.history = history
        self.audio_service = audio_service

    def execute(self, label: str = "Trim") -> EditSnapshot:
        session = self.session
        if not session.has_selection:
            raise ValueError("Select a range to trim first.")

        start, end = session.selection_start, session.selection_end
        before = session.snapshot(label)
        result = self.audio_service.trim(session.artifact, start, end)
        # history changes only once the edited file exists
        self.history.push_undo(before)

        session.artifact = result.artifact
        session.duration = result.duration
        session.markers = after_trim(session.markers, start, end)
        session.select_all()
        return before
