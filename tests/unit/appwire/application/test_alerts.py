"""Unit tests for alert streams."""

import pytest

from appwire.application.alerts import CacheAlertStream, SessionAlertStream
from appwire.application.session import Session
from appwire.domain import Alert
from appwire.infrastructure.session_handlers import CacheSessionHandler, NullSessionHandler
from appwire.infrastructure.stores import ArrayCacheStore


@pytest.fixture
def session():
    session = Session(NullSessionHandler())
    session.start("abc")
    return session


class TestSessionAlertStream:
    """Test cases for session-backed alerts."""

    def test_add_and_read(self, session):
        """Test that queued messages are returned in order."""
        stream = SessionAlertStream("site.alerts", session)
        stream.add_message("danger", "Bad password").add_message("info", "Try again")

        assert stream.messages() == [
            Alert(type="danger", message="Bad password"),
            Alert(type="info", message="Try again"),
        ]
        assert session.get("site.alerts") == [
            {"type": "danger", "message": "Bad password"},
            {"type": "info", "message": "Try again"},
        ]

    def test_get_and_clear(self, session):
        """Test that reading with clear empties the stream."""
        stream = SessionAlertStream("site.alerts", session)
        stream.add_message("success", "Saved")

        assert len(stream.get_and_clear_messages()) == 1
        assert stream.messages() == []

    def test_messages_persist_to_handler(self):
        """Test that queued messages are written through and visible when the session is resumed."""
        handler = CacheSessionHandler(ArrayCacheStore())
        session = Session(handler)
        session.start("abc")
        SessionAlertStream("site.alerts", session).add_message("info", "Saved")

        resumed = Session(handler)
        resumed.start("abc")
        assert SessionAlertStream("site.alerts", resumed).messages() == [Alert(type="info", message="Saved")]


class TestCacheAlertStream:
    """Test cases for cache-backed alerts."""

    def test_key_is_scoped_by_session(self):
        """Test that messages are stored under the session id."""
        cache = ArrayCacheStore()
        CacheAlertStream("site.alerts", cache, session_id="abc").add_message("info", "Hello")

        assert cache.get("abc.site.alerts") == [{"type": "info", "message": "Hello"}]
        assert CacheAlertStream("site.alerts", cache, session_id="other").messages() == []

    def test_without_session(self):
        """Test the plain key when there is no session."""
        cache = ArrayCacheStore()
        stream = CacheAlertStream("site.alerts", cache)
        stream.add_message("info", "Hello")
        stream.reset()

        assert cache.get("site.alerts") == []
