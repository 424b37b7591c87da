"""Application layer - Request throttling."""

import hashlib
import json
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog

from appwire.domain import IAttemptStore, ThrottleConfigError, ThrottleDecision, ThrottleMethod, ThrottleRule

logger = structlog.get_logger(__name__)

RuleDefinition = Union[ThrottleRule, Mapping[str, Any], None]


def request_fingerprint(request_data: Optional[Mapping[str, Any]] = None) -> str:
    """Stable fingerprint of the request data identifying a throttled subject."""
    encoded = json.dumps(dict(request_data or {}), sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Throttler:
    """Rate-limits actions of predefined types with backoff rules.

    Each throttle type has at most one ``ThrottleRule``. A type without a rule,
    or with a ``None`` rule, is never throttled. Attempts are stored per
    subject in an ``IAttemptStore`` under a key combining the throttle type
    and the subject key.

    ``check_attempt`` only reads the history and ``record_attempt`` only
    writes it; callers needing both as one step use ``attempt``, which holds
    the subject's lock across the check and the write. Subject locks come
    from a fixed pool of ``lock_stripes`` locks, so subjects may share a lock
    but the pool never grows.

    Attributes:
        _store: Attempt history storage.
        _rules: Throttle rules by type.
        _locks: Striped subject locks.
    """

    def __init__(self, store: IAttemptStore, lock_stripes: int = 64) -> None:
        if lock_stripes < 1:
            raise ValueError("lock_stripes must be at least 1")
        self._store = store
        self._rules: Dict[str, Optional[ThrottleRule]] = {}
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(lock_stripes)]

    @property
    def store(self) -> IAttemptStore:
        """The attempt store holding every subject's history."""
        return self._store

    def add_throttle_rule(self, throttle_type: str, rule: RuleDefinition) -> None:
        """Set the rule for a throttle type.

        Args:
            throttle_type: The throttle type, e.g. ``"sign_in_attempt"``.
            rule: A rule, a rule definition mapping, or None to disable throttling.

        Raises:
            ThrottleConfigError: If a definition mapping is malformed.
        """
        if rule is not None and not isinstance(rule, ThrottleRule):
            rule = ThrottleRule.from_config(rule)
        self._rules[throttle_type] = rule

    def load_rules(self, definitions: Optional[Mapping[str, RuleDefinition]]) -> None:
        """Set the rules of several throttle types from configuration.

        Falsy definitions disable throttling for their type.

        Raises:
            ThrottleConfigError: If the definitions are not a mapping or one is malformed.
        """
        if definitions is None:
            return
        if not isinstance(definitions, Mapping):
            raise ThrottleConfigError(f"Throttle rules must be a mapping, got {type(definitions).__name__}")
        for throttle_type, definition in definitions.items():
            self.add_throttle_rule(throttle_type, definition or None)

    def get_throttle_rule(self, throttle_type: str) -> Optional[ThrottleRule]:
        """Return the rule of a throttle type, or None if it is not throttled."""
        return self._rules.get(throttle_type)

    def get_throttle_rules(self) -> Dict[str, Optional[ThrottleRule]]:
        """Copy of every configured rule by throttle type, including disabled (``None``) ones."""
        return dict(self._rules)

    def check_attempt(self, throttle_type: str, subject_key: str, now: Optional[datetime] = None) -> ThrottleDecision:
        """Decide whether a subject may attempt a throttled action now.

        Args:
            throttle_type: The throttle type.
            subject_key: Identifies the throttled subject, see ``request_fingerprint``.
            now: Current time, defaults to the current UTC time.

        Returns:
            The decision; when denied, ``delay_until`` is the last attempt time
            plus the delay required for the counted number of attempts.
        """
        rule = self._rules.get(throttle_type)
        if rule is None:
            return ThrottleDecision(allowed=True)

        now = now or _utcnow()
        key = self._record_key(throttle_type, subject_key)

        window_start = rule.window_start(now)
        if window_start is not None:
            self._store.prune(key, window_start)

        record = self._store.get_record(key)
        if record is None or record.last_attempt is None:
            return ThrottleDecision(allowed=True)

        if rule.method == ThrottleMethod.SINGLE:
            attempt_count = 1
        else:
            attempt_count = len(record.timestamps)

        required_delay = rule.get_delay(attempt_count)
        delay_until = record.last_attempt + required_delay

        if now < delay_until:
            logger.info(
                "Throttled attempt",
                throttle_type=throttle_type,
                attempt_count=attempt_count,
                delay_until=delay_until.isoformat(),
            )
            return ThrottleDecision(
                allowed=False,
                delay_until=delay_until,
                required_delay=required_delay,
                attempt_count=attempt_count,
            )

        return ThrottleDecision(allowed=True, required_delay=required_delay, attempt_count=attempt_count)

    def record_attempt(self, throttle_type: str, subject_key: str, now: Optional[datetime] = None) -> None:
        """Record an attempt of a subject at ``now``.

        Under the ``single`` method only the newest attempt is kept.
        """
        now = now or _utcnow()
        key = self._record_key(throttle_type, subject_key)
        self._store.add_attempt(key, now)

        rule = self._rules.get(throttle_type)
        if rule is not None and rule.method == ThrottleMethod.SINGLE:
            self._store.prune(key, now)

    def attempt(self, throttle_type: str, subject_key: str, now: Optional[datetime] = None) -> ThrottleDecision:
        """Check and record an attempt as one step.

        Every attempt is recorded, allowed or not, so repeated denied attempts
        keep increasing the required delay.
        """
        now = now or _utcnow()
        with self._subject_lock(throttle_type, subject_key):
            decision = self.check_attempt(throttle_type, subject_key, now)
            self.record_attempt(throttle_type, subject_key, now)
        return decision

    def reset(self, throttle_type: str, subject_key: str) -> None:
        """Forget every recorded attempt of a subject."""
        self._store.delete(self._record_key(throttle_type, subject_key))

    def _subject_lock(self, throttle_type: str, subject_key: str) -> threading.Lock:
        return self._locks[hash(self._record_key(throttle_type, subject_key)) % len(self._locks)]

    @staticmethod
    def _record_key(throttle_type: str, subject_key: str) -> str:
        return f"{throttle_type}:{subject_key}"
