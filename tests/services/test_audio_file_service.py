import wave

import numpy as np
import pytest

from waveform_session.domain.artifact import ArtifactRef, Provenance
from waveform_session.domain.errors import AttributeReadFailure, DecodeFailure, InvalidEditRange
from waveform_session.domain.silence_range import SilenceRange

from audio_helpers import SAMPLE_RATE, silence, tone


def test_probe_reports_duration_rate_and_channels(audio_service, write_wav):
    ref = write_wav("stereo.wav", tone(1.5, channels=2))

    info = audio_service.probe(ref)

    assert info.sample_rate == SAMPLE_RATE
    assert info.channels == 2
    assert info.frames == int(1.5 * SAMPLE_RATE)
    assert info.duration == pytest.approx(1.5)


def test_read_samples_keeps_channels_separate(audio_service, write_wav):
    left = tone(0.5)
    stereo = np.concatenate([left, np.zeros_like(left)], axis=1)
    ref = write_wav("split.wav", stereo)

    data, sample_rate = audio_service.read_samples(ref)

    assert sample_rate == SAMPLE_RATE
    assert data.shape == (int(0.5 * SAMPLE_RATE), 2)
    assert np.allclose(data[:, 0], left[:, 0], atol=1e-3)
    assert np.all(data[:, 1] == 0)


def test_missing_file_raises_typed_errors(audio_service, tmp_path):
    ref = ArtifactRef.imported(tmp_path / "missing.wav")

    with pytest.raises(DecodeFailure):
        audio_service.read_samples(ref)
    with pytest.raises(AttributeReadFailure):
        audio_service.probe(ref)


def test_garbage_file_raises_decode_failure(audio_service, tmp_path):
    path = tmp_path / "garbage.wav"
    path.write_bytes(b"not a wav file at all")

    with pytest.raises(DecodeFailure):
        audio_service.read_samples(ArtifactRef.imported(path))


def test_trim_writes_new_session_artifact(audio_service, write_wav):
    ref = write_wav("take.wav", tone(4.0))

    result = audio_service.trim(ref, 1.0, 2.5)

    assert result.artifact.provenance is Provenance.SESSION_TEMP
    assert result.artifact.path.exists()
    assert result.duration == pytest.approx(1.5)
    assert audio_service.probe(result.artifact).duration == pytest.approx(1.5)
    assert ref.path.exists()


def test_cut_removes_range(audio_service, write_wav):
    ref = write_wav("take.wav", np.concatenate([tone(1.0), silence(1.0), tone(1.0)]))

    result = audio_service.cut(ref, 1.0, 2.0)
    data, _ = audio_service.read_samples(result.artifact)

    assert result.duration == pytest.approx(2.0)
    assert np.max(np.abs(data)) > 0.4
    assert data.shape[0] == 2 * SAMPLE_RATE


@pytest.mark.parametrize("start,end", [(2.0, 1.0), (-0.5, 1.0), (5.0, 6.0)])
def test_invalid_ranges_are_rejected(audio_service, write_wav, start, end):
    ref = write_wav("take.wav", tone(2.0))

    with pytest.raises(InvalidEditRange):
        audio_service.trim(ref, start, end)


def test_cutting_everything_is_rejected(audio_service, write_wav):
    ref = write_wav("take.wav", tone(1.0))

    with pytest.raises(InvalidEditRange):
        audio_service.cut(ref, 0.0, 1.0)


def test_remove_silence_keeps_padding(audio_service, write_wav):
    ref = write_wav("take.wav", np.concatenate([tone(1.0), silence(2.0), tone(1.0)]))

    result = audio_service.remove_silence(ref, [SilenceRange(1.0, 3.0)], padding=0.25)

    assert result.duration == pytest.approx(2.5)


def write_24bit_wav(path, samples):
    ints = (np.asarray(samples) * (1 << 23)).astype(np.int32)
    raw = ints.astype("<i4").view(np.uint8).reshape(-1, 4)[:, :3].tobytes()
    with wave.open(str(path), "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(3)
        wav_file.setframerate(SAMPLE_RATE)
        wav_file.writeframes(raw)


def test_truncated_24bit_file_drops_partial_frame(audio_service, tmp_path):
    path = tmp_path / "cut_short.wav"
    write_24bit_wav(path, [0.5, -0.25] * 5)
    path.write_bytes(path.read_bytes()[:-1])

    data, sample_rate = audio_service.read_samples(ArtifactRef.imported(path))

    assert sample_rate == SAMPLE_RATE
    assert data.shape == (9, 1)
    assert data[0, 0] == pytest.approx(0.5)
    assert data[1, 0] == pytest.approx(-0.25)


def test_failed_write_releases_reserved_artifact(audio_service, write_wav, workspace, monkeypatch):
    ref = write_wav("take.wav", tone(2.0))

    def failing_write(output, data, sample_rate):
        output.path.write_bytes(b"RIFF")
        raise OSError("disk full")

    monkeypatch.setattr(audio_service, "write_samples", failing_write)

    with pytest.raises(OSError):
        audio_service.trim(ref, 0.5, 1.5)

    assert list(workspace.root.iterdir()) == []
