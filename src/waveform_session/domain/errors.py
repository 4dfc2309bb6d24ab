"""Error types raised by the editing session."""

from __future__ import annotations

from pathlib import Path


class WaveformSessionError(Exception):
    """Base class for every error raised by this package."""


class AnalysisFailure(WaveformSessionError):
    """Raised when silence analysis fails or returns malformed data."""

    def __init__(self, source: Path | str | None, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Silence analysis failed for {source}: {reason}")


class AttributeReadFailure(WaveformSessionError):
    """Raised when an audio source cannot be opened or measured."""

    def __init__(self, source: Path | str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Could not read audio attributes of {source}: {reason}")


class DecodeFailure(WaveformSessionError):
    """Raised when an audio source cannot be decoded into samples."""

    def __init__(self, source: Path | str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Could not decode {source}: {reason}")


class FileCleanupFailure(WaveformSessionError):
    """Raised when an orphaned temporary artifact cannot be deleted."""

    def __init__(self, path: Path | str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not delete {path}: {reason}")


class InvalidEditRange(WaveformSessionError):
    """Raised when a trim or cut range is empty or outside the source."""

    def __init__(self, start: float, end: float, duration: float):
        self.start = start
        self.end = end
        self.duration = duration
        super().__init__(f"Invalid edit range {start:.3f}..{end:.3f} for {duration:.3f}s of audio")


class OwnershipViolation(WaveformSessionError):
    """Raised when a single-writer component is touched from a foreign thread."""
