from dataclasses import dataclass


@dataclass(frozen=True)
class SilenceRange:
    """A contiguous span of audio classified as silent, in seconds."""
    start: float
    end: float

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"Silence range must have start < end, got {self.start}..{self.end}")

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, time: float) -> bool:
        return self.start <= time < self.end
