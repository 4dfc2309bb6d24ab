from __future__ import annotations

import wave
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from waveform_session.domain.artifact import ArtifactRef
from waveform_session.domain.errors import AttributeReadFailure, DecodeFailure, InvalidEditRange
from waveform_session.domain.silence_range import SilenceRange
from waveform_session.services.artifact_workspace import ArtifactWorkspace
from waveform_session.utils.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AudioInfo:
    duration: float
    sample_rate: int
    channels: int
    frames: int


@dataclass(frozen=True)
class AudioEditResult:
    artifact: ArtifactRef
    duration: float


class AudioFileService:
    """
    Reads PCM WAV sources and writes edited copies into the session workspace.
    Samples are float32 arrays shaped (frames, channels) in [-1, 1].
    """

    def __init__(self, workspace: ArtifactWorkspace):
        self.workspace = workspace

    def probe(self, ref: ArtifactRef) -> AudioInfo:
        try:
            with wave.open(str(ref.path), "rb") as wav_file:
                channels = wav_file.getnchannels()
                sample_rate = wav_file.getframerate()
                frames = wav_file.getnframes()
        except (OSError, EOFError, wave.Error) as exc:
            raise AttributeReadFailure(ref.path, str(exc)) from exc
        if sample_rate <= 0:
            raise AttributeReadFailure(ref.path, f"invalid sample rate {sample_rate}")
        return AudioInfo(
            duration=frames / sample_rate,
            sample_rate=sample_rate,
            channels=channels,
            frames=frames,
        )

    def read_samples(self, ref: ArtifactRef) -> tuple[np.ndarray, int]:
        try:
            with wave.open(str(ref.path), "rb") as wav_file:
                channels = wav_file.getnchannels()
                sample_width = wav_file.getsampwidth()
                sample_rate = wav_file.getframerate()
                frame_count = wav_file.getnframes()
                frames = wav_file.readframes(frame_count)
        except (OSError, EOFError, wave.Error) as exc:
            raise DecodeFailure(ref.path, str(exc)) from exc

        channels = max(1, channels)
        # a truncated data chunk can end mid-frame
        frame_bytes = sample_width * channels
        if frame_bytes > 0:
            frames = frames[: len(frames) - len(frames) % frame_bytes]

        if sample_width == 1:
            data = np.frombuffer(frames, dtype=np.uint8).astype(np.float32)
            data = (data - 128.0) / 128.0
        elif sample_width == 2:
            data = np.frombuffer(frames, dtype=np.int16).astype(np.float32) / 32768.0
        elif sample_width == 3:
            raw = np.frombuffer(frames, dtype=np.uint8).reshape(-1, 3)
            ints = (
                raw[:, 0].astype(np.int32)
                | (raw[:, 1].astype(np.int32) << 8)
                | (raw[:, 2].astype(np.int32) << 16)
            )
            sign_bit = 1 << 23
            ints = (ints ^ sign_bit) - sign_bit
            data = ints.astype(np.float32) / float(1 << 23)
        elif sample_width == 4:
            data = np.frombuffer(frames, dtype=np.int32).astype(np.float32) / 2147483648.0
        else:
            raise DecodeFailure(ref.path, f"unsupported WAV sample width: {sample_width} bytes")

        data = data.reshape(-1, channels)
        return np.clip(data, -1.0, 1.0).astype(np.float32), sample_rate

    def write_samples(self, ref: ArtifactRef, data: np.ndarray, sample_rate: int) -> None:
        arr = np.asarray(data, dtype=np.float32)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        clipped = np.clip(arr, -1.0, 1.0)
        pcm = (clipped * 32767.0).astype(np.int16)
        ref.path.parent.mkdir(parents=True, exist_ok=True)
        with wave.open(str(ref.path), "wb") as wav_file:
            wav_file.setnchannels(pcm.shape[1])
            wav_file.setsampwidth(2)
            wav_file.setframerate(sample_rate)
            wav_file.writeframes(pcm.tobytes())

    def trim(self, ref: ArtifactRef, start: float, end: float) -> AudioEditResult:
        """Keep only [start, end) of the source."""
        data, sample_rate = self.read_samples(ref)
        first, last = self._frame_range(data, sample_rate, start, end)
        kept = data[first:last]
        return self._write_edit(ref, kept, sample_rate, "trim")

    def cut(self, ref: ArtifactRef, start: float, end: float) -> AudioEditResult:
        """Remove [start, end) from the source and join the remainder."""
        data, sample_rate = self.read_samples(ref)
        first, last = self._frame_range(data, sample_rate, start, end)
        kept = np.concatenate([data[:first], data[last:]])
        if kept.shape[0] == 0:
            raise InvalidEditRange(start, end, data.shape[0] / sample_rate)
        return self._write_edit(ref, kept, sample_rate, "cut")

    def remove_silence(
        self,
        ref: ArtifactRef,
        ranges: Iterable[SilenceRange],
        padding: float = 0.0,
    ) -> AudioEditResult:
        """Remove every silence range, keeping `padding` seconds at both edges of each."""
        data, sample_rate = self.read_samples(ref)
        total = data.shape[0]
        keep = np.ones(total, dtype=bool)
        removed = 0
        for silence in ranges:
            start = silence.start + padding
            end = max(start, silence.end - padding)
            first = int(np.clip(round(start * sample_rate), 0, total))
            last = int(np.clip(round(end * sample_rate), 0, total))
            if last > first:
                keep[first:last] = False
                removed += 1
        kept = data[keep]
        if kept.shape[0] == 0:
            raise InvalidEditRange(0.0, total / sample_rate, total / sample_rate)
        logger.info("Removing %d silence ranges from %s", removed, ref.name)
        return self._write_edit(ref, kept, sample_rate, "nosilence")

    def _frame_range(
        self,
        data: np.ndarray,
        sample_rate: int,
        start: float,
        end: float,
    ) -> tuple[int, int]:
        total = data.shape[0]
        duration = total / sample_rate if sample_rate else 0.0
        first = int(round(start * sample_rate))
        last = int(round(end * sample_rate))
        if start < 0 or first >= last or first >= total:
            raise InvalidEditRange(start, end, duration)
        return first, min(last, total)

    def _write_edit(
        self,
        source: ArtifactRef,
        data: np.ndarray,
        sample_rate: int,
        tag: str,
    ) -> AudioEditResult:
        output = self.workspace.new_artifact(source, tag)
        try:
            self.write_samples(output, data, sample_rate)
        except Exception:
            self.workspace.discard(output)
            raise
        duration = data.shape[0] / sample_rate
        logger.debug("Wrote %s (%.3fs)", output.name, duration)
        return AudioEditResult(artifact=output, duration=duration)
