from pathlib import Path

import numpy as np
import pytest

from waveform_session.domain.artifact import ArtifactRef
from waveform_session.services.artifact_workspace import ArtifactWorkspace
from waveform_session.services.audio_file_service import AudioFileService

from audio_helpers import SAMPLE_RATE, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def workspace(tmp_path: Path):
    ws = ArtifactWorkspace(tmp_path / "scratch")
    yield ws
    ws.close()


@pytest.fixture
def audio_service(workspace: ArtifactWorkspace) -> AudioFileService:
    return AudioFileService(workspace)


@pytest.fixture
def write_wav(tmp_path: Path, audio_service: AudioFileService):
    """Write samples to an imported (non-session) WAV file and return its ref."""

    def _write(name: str, data: np.ndarray, sample_rate: int = SAMPLE_RATE) -> ArtifactRef:
        ref = ArtifactRef.imported(tmp_path / name)
        audio_service.write_samples(ref, data, sample_rate)
        return ref

    return _write
