import threading

from waveform_session.domain.errors import OwnershipViolation


class OwnerThread:
    """
    Token binding a mutable component to the thread that created it.
    Components call check() before mutating their state.
    """

    def __init__(self, name: str):
        self.name = name
        self._ident = threading.get_ident()

    def check(self) -> None:
        current = threading.get_ident()
        if current != self._ident:
            raise OwnershipViolation(
                f"{self.name} is owned by thread {self._ident} but was used from thread {current}"
            )

    def rebind(self) -> None:
        """Hand ownership over to the calling thread."""
        self._ident = threading.get_ident()
