"""Unit tests for CircularDependencyDetector."""

import threading

import pytest

from appwire.application.circular_detector import CircularDependencyDetector
from appwire.domain import CircularDependencyError


class TestResolving:
    """Test cases for tracking names under construction."""

    def test_nested_names_are_active(self):
        """Test that nested blocks stack their names outermost first."""
        detector = CircularDependencyDetector()
        with detector.resolving("session"):
            with detector.resolving("cache"):
                assert detector.active == ["session", "cache"]
            assert detector.active == ["session"]
        assert detector.active == []

    def test_name_released_after_error(self):
        """Test that a failing block still releases its name."""
        detector = CircularDependencyDetector()
        with pytest.raises(ValueError):
            with detector.resolving("db"):
                raise ValueError("connection refused")

        assert detector.active == []
        with detector.resolving("db"):
            assert detector.active == ["db"]

    def test_clear(self):
        """Test that clear forgets the chain."""
        detector = CircularDependencyDetector()
        detector.active.append("session")
        detector.clear()
        assert detector.active == []


class TestCycleDetection:
    """Test cases for cycle detection."""

    def test_direct_cycle(self):
        """Test resolving a name inside its own block."""
        detector = CircularDependencyDetector()
        with detector.resolving("config"):
            with pytest.raises(CircularDependencyError) as exc_info:
                with detector.resolving("config"):
                    pass
        assert exc_info.value.dependency_chain == ["config", "config"]

    def test_chain_starts_at_first_occurrence(self):
        """Test that the reported chain starts at the repeated name."""
        detector = CircularDependencyDetector()
        with detector.resolving("alerts"), detector.resolving("session"), detector.resolving("cache"):
            with pytest.raises(CircularDependencyError) as exc_info:
                with detector.resolving("session"):
                    pass
        assert exc_info.value.dependency_chain == ["session", "cache", "session"]

    def test_rejected_name_leaves_chain_intact(self):
        """Test that a detected cycle does not alter the active chain."""
        detector = CircularDependencyDetector()
        with detector.resolving("session"):
            with pytest.raises(CircularDependencyError):
                with detector.resolving("session"):
                    pass
            assert detector.active == ["session"]


class TestThreadIsolation:
    """Test cases for per-thread chains."""

    def test_chains_are_thread_local(self):
        """Test that another thread may build a name this thread is building."""
        detector = CircularDependencyDetector()
        errors = []

        def resolve_in_thread():
            try:
                with detector.resolving("cache"):
                    pass
            except CircularDependencyError as e:
                errors.append(e)

        with detector.resolving("cache"):
            thread = threading.Thread(target=resolve_in_thread)
            thread.start()
            thread.join()
            assert detector.active == ["cache"]

        assert errors == []
