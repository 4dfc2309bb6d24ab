import asyncio

import numpy as np
import pytest

from waveform_session.domain.errors import AnalysisFailure
from waveform_session.domain.artifact import ArtifactRef
from waveform_session.services.silence_detector import SilenceDetector

from audio_helpers import SAMPLE_RATE, silence, tone


@pytest.fixture
def detector(audio_service):
    return SilenceDetector(audio_service)


def test_finds_gap_between_tones():
    data = np.concatenate([tone(1.0), silence(1.0), tone(1.0)])

    ranges = SilenceDetector.find_silent_ranges(data, SAMPLE_RATE, -45.0, 0.5)

    assert len(ranges) == 1
    assert ranges[0].start == pytest.approx(1.0)
    assert ranges[0].end == pytest.approx(2.0)


def test_trailing_silence_runs_to_end_of_file():
    data = np.concatenate([tone(1.0), silence(0.8)])

    ranges = SilenceDetector.find_silent_ranges(data, SAMPLE_RATE, -45.0, 0.5)

    assert len(ranges) == 1
    assert ranges[0].start == pytest.approx(1.0)
    assert ranges[0].end == pytest.approx(1.8)


def test_short_gaps_are_ignored():
    data = np.concatenate([tone(0.5), silence(0.3), tone(0.5)])

    assert SilenceDetector.find_silent_ranges(data, SAMPLE_RATE, -45.0, 0.5) == []


def test_empty_buffer_has_no_silence():
    assert SilenceDetector.find_silent_ranges(np.zeros((0, 1)), SAMPLE_RATE, -45.0, 0.5) == []


def test_detect_silence_reads_file(detector, write_wav):
    source = write_wav("gap.wav", np.concatenate([tone(1.0), silence(1.0), tone(1.0)]))

    ranges = asyncio.run(detector.detect_silence(source, -45.0, 0.5))

    assert [(round(r.start, 2), round(r.end, 2)) for r in ranges] == [(1.0, 2.0)]


def test_results_are_cached_until_cleared(detector, write_wav):
    source = write_wav("gap.wav", np.concatenate([tone(1.0), silence(1.0), tone(1.0)]))
    first = asyncio.run(detector.detect_silence(source, -45.0, 0.5))

    source.path.unlink()
    assert asyncio.run(detector.detect_silence(source, -45.0, 0.5)) == first

    detector.clear_cache(source)
    with pytest.raises(AnalysisFailure):
        asyncio.run(detector.detect_silence(source, -45.0, 0.5))


def test_cache_is_keyed_by_settings(detector, write_wav):
    source = write_wav("gap.wav", np.concatenate([tone(1.0), silence(1.0), tone(1.0)]))
    asyncio.run(detector.detect_silence(source, -45.0, 0.5))
    source.path.unlink()

    with pytest.raises(AnalysisFailure):
        asyncio.run(detector.detect_silence(source, -45.0, 2.0))


def test_missing_file_is_an_analysis_failure(detector, tmp_path):
    source = ArtifactRef.imported(tmp_path / "missing.wav")

    with pytest.raises(AnalysisFailure) as excinfo:
        asyncio.run(detector.detect_silence(source, -45.0, 0.5))

    assert excinfo.value.source == source.path


def test_noise_floor_of_constant_signal():
    data = np.full((SAMPLE_RATE, 1), 0.01, dtype=np.float32)

    assert SilenceDetector.noise_floor_db(data, SAMPLE_RATE) == pytest.approx(-40.0, abs=0.01)


def test_noise_floor_uses_quietest_windows():
    data = np.concatenate([silence(0.5) + 0.001, tone(2.0)])

    floor = SilenceDetector.noise_floor_db(data, SAMPLE_RATE)

    assert floor == pytest.approx(-60.0, abs=0.5)


def test_noise_floor_needs_at_least_one_window():
    assert SilenceDetector.noise_floor_db(silence(0.01), SAMPLE_RATE) is None


def test_estimate_noise_floor_of_missing_file_is_none(detector, tmp_path):
    source = ArtifactRef.imported(tmp_path / "missing.wav")

    assert asyncio.run(detector.estimate_noise_floor(source)) is None


def test_range_times_follow_window_length_at_odd_sample_rates():
    rate = 22050
    t = np.arange(int(0.5 * rate)) / rate
    burst = (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
    data = np.concatenate([burst, np.zeros(20 * rate, dtype=np.float32), burst])

    ranges = SilenceDetector.find_silent_ranges(data, rate, -45.0, 0.5)

    assert len(ranges) == 1
    assert 0.5 <= ranges[0].start < 0.52
    assert ranges[0].end <= 20.5, "Silence must end before the second burst starts"
    assert ranges[0].end == pytest.approx(20.49, abs=0.01)
