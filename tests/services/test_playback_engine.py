import numpy as np
import pytest

try:
    import sounddevice as sd
except OSError:  # PortAudio missing on the host
    pytest.skip("PortAudio is not available", allow_module_level=True)

from waveform_session.services.playback_engine import PlaybackEngine

from audio_helpers import SAMPLE_RATE, tone


@pytest.fixture
def played(monkeypatch):
    calls = []
    monkeypatch.setattr(sd, "play", lambda data, samplerate: calls.append((data, samplerate)))
    monkeypatch.setattr(sd, "stop", lambda: None)
    return calls


@pytest.fixture
def engine(clock):
    return PlaybackEngine(clock=clock)


def test_position_follows_clock(engine, played, clock):
    engine.play(tone(2.0), SAMPLE_RATE)

    clock.advance(0.5)

    assert engine.is_playing()
    assert engine.position() == pytest.approx(0.5)
    assert played[0][1] == SAMPLE_RATE


def test_seek_restarts_from_new_frame(engine, played, clock):
    engine.play(tone(2.0), SAMPLE_RATE)
    clock.advance(0.2)

    engine.seek(1.5)

    assert engine.position() == pytest.approx(1.5)
    assert played[-1][0].shape[0] == int(0.5 * SAMPLE_RATE)


def test_seek_with_fade_ramps_in(engine, played):
    data = np.full((SAMPLE_RATE, 1), 0.5, dtype=np.float32)
    engine.play(data, SAMPLE_RATE)

    engine.seek(0.5, fade=0.02)

    chunk = played[-1][0]
    assert chunk[0, 0] == 0.0
    assert chunk[int(0.02 * SAMPLE_RATE) - 1, 0] == pytest.approx(0.5)
    assert data[int(0.5 * SAMPLE_RATE), 0] == 0.5, "Source buffer is left untouched"


def test_stop_freezes_position(engine, played, clock):
    engine.play(tone(2.0), SAMPLE_RATE)
    clock.advance(0.3)

    engine.stop()
    clock.advance(1.0)

    assert not engine.is_playing()
    assert engine.position() == pytest.approx(0.3)


def test_seek_past_end_stops_at_duration(engine, played):
    engine.play(tone(1.0), SAMPLE_RATE)

    engine.seek(5.0)

    assert engine.position() == pytest.approx(1.0)
    assert not engine.is_playing()
