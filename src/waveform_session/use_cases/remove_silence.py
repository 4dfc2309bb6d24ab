from typing import Sequence

from waveform_session.domain.edit_session import EditSession
from waveform_session.domain.edit_snapshot import EditSnapshot
from waveform_session.domain.marker import after_removing_silence
from waveform_session.domain.silence_range import SilenceRange
from waveform_session.services.audio_file_service import AudioFileService
from waveform_session.services.edit_history import EditHistoryStore


class RemoveSilence:
    """Use case for cutting every detected silence out of the working audio at once."""

    def __init__(self, session: EditSession, history: EditHistoryStore, audio_service: AudioFileService):
        self.session = session
        self.history = history
        self.audio_service = audio_service

    def execute(
        self,
        ranges: Sequence[SilenceRange],
        padding: float = 0.05,
        label: str = "Remove Silence",
    ) -> EditSnapshot | None:
        if padding < 0:
            raise ValueError("Padding cannot be negative.")
        if not ranges:
            return None

        session = self.session
        before = session.snapshot(label)
        result = self.audio_service.remove_silence(session.artifact, ranges, padding)
        # history changes only once the edited file exists
        self.history.push_undo(before)

        session.artifact = result.artifact
        session.duration = result.duration
        session.markers = after_removing_silence(session.markers, ranges, padding)
        session.select_all()
        return before
