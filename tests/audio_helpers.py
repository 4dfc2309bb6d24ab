import numpy as np

SAMPLE_RATE = 8000


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def tone(seconds: float, amplitude: float = 0.5, channels: int = 1, freq: float = 440.0) -> np.ndarray:
    t = np.arange(int(seconds * SAMPLE_RATE)) / SAMPLE_RATE
    samples = (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)
    return np.repeat(samples[:, None], channels, axis=1)


def silence(seconds: float, channels: int = 1) -> np.ndarray:
    return np.zeros((int(seconds * SAMPLE_RATE), channels), dtype=np.float32)
