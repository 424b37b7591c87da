"""Application layer - Circular dependency detection."""

import threading
from contextlib import contextmanager
from typing import Iterator, List

from appwire.domain import CircularDependencyError


class CircularDependencyDetector:
    """Tracks the services each thread is building.

    A factory that resolves a service already being built on the same thread
    would recurse forever; ``resolving`` turns that into a
    ``CircularDependencyError`` carrying the chain from the first occurrence.

    Attributes:
        _state: Per-thread chain of names under construction.
    """

    def __init__(self) -> None:
        self._state = threading.local()

    @property
    def active(self) -> List[str]:
        """Names being resolved on the current thread, outermost first."""
        chain = getattr(self._state, "chain", None)
        if chain is None:
            chain = self._state.chain = []
        return chain

    @contextmanager
    def resolving(self, name: str) -> Iterator[None]:
        """Mark ``name`` as under construction for the duration of the block.

        Raises:
            CircularDependencyError: If ``name`` is already under construction.

        Example:
            >>> with detector.resolving("session"):
            ...     with detector.resolving("session"):  # raises
            ...         pass
        """
        chain = self.active
        if name in chain:
            raise CircularDependencyError(chain[chain.index(name) :] + [name])

        chain.append(name)
        try:
            yield
        finally:
            chain.pop()

    def clear(self) -> None:
        """Forget the current thread's chain."""
        self.active.clear()
