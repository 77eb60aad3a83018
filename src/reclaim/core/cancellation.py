"""Generation-based cooperative cancellation."""

from __future__ import annotations

import threading


class CancellationToken:
    """Handle for one scan generation.

    A token is live while its generation is the source's current one and
    nobody has called :meth:`cancel`. Walkers poll :meth:`is_current` at
    every yield point; nothing interrupts a filesystem call in flight.
    """

    __slots__ = ("_source", "generation", "_cancelled")

    def __init__(self, source: GenerationSource, generation: int) -> None:
        self._source = source
        self.generation = generation
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def is_current(self) -> bool:
        return not self._cancelled.is_set() and self._source.current == self.generation

    def __repr__(self) -> str:
        return f"CancellationToken(generation={self.generation}, current={self.is_current()})"


class GenerationSource:
    """Monotonically increasing generation counter."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> CancellationToken:
        """Start a new generation, invalidating every earlier token."""
        with self._lock:
            self._current += 1
            return CancellationToken(self, self._current)
