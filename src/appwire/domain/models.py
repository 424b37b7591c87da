import re
import threading
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator, model_validator

from appwire.domain.enums import Lifetime, ThrottleMethod
from appwire.domain.exceptions import ThrottleConfigError

if TYPE_CHECKING:
    from appwire.domain.interfaces import IContainer

_DURATION_PATTERN = re.compile(
    r"^\s*(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>s|sec|secs|seconds?|m|min|mins|minutes?|h|hours?|d|days?|w|weeks?)?\s*$",
    re.IGNORECASE,
)

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """Convert a duration description into a timedelta.

    Accepts a timedelta, a number of seconds, or strings such as ``"1 day"``,
    ``"30 minutes"``, ``"90s"`` and ``"2 weeks"``. Bare numbers are seconds.

    Raises:
        ValueError: If the value cannot be interpreted as a non-negative duration.
    """
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    elif isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        match = _DURATION_PATTERN.match(value)
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        unit = (match.group("unit") or "s").lower()
        seconds = float(match.group("amount")) * _UNIT_SECONDS[unit[0]]
    else:
        raise ValueError(f"Invalid duration: {value!r}")

    if seconds < 0:
        raise ValueError(f"Duration must not be negative: {value!r}")
    return timedelta(seconds=seconds)


def _parse_count(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid attempt count: {value!r}") from e


class ServiceRegistration(BaseModel):
    """Value object representing a service registration.

    Attributes:
        name: The service name.
        factory: Function that receives the container and returns the instance.
        lifetime: How long the instance should live.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="The name the service is registered under.")
    factory: Callable[["IContainer"], Any] = Field(..., description="The factory building the service instance.")
    lifetime: Lifetime = Field(default=Lifetime.SINGLETON, description="The lifetime of the registered service.")


class ServiceEntry(BaseModel):
    """Tracks a registration together with its cached instance.

    Attributes:
        registration: The current registration (replaced on extend).
        cached_instance: Cached instance for singleton services.
        has_instance: Whether ``cached_instance`` holds a built instance.
        resolution_count: Number of times this service has been resolved.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    registration: ServiceRegistration = Field(..., description="The registration details of the service.")
    cached_instance: Optional[Any] = Field(default=None, description="Cached instance for singleton services.")
    has_instance: bool = Field(default=False, description="Whether an instance has been cached.")
    resolution_count: int = Field(default=0, description="Number of times this service has been resolved.")

    _lock: Any = PrivateAttr(default_factory=threading.Lock)

    @property
    def lock(self) -> threading.Lock:
        """Lock guarding construction of this entry's instance."""
        return self._lock

    def store(self, instance: Any) -> None:
        self.cached_instance = instance
        self.has_instance = True

    def reset(self) -> None:
        """Forget the cached instance so the next resolution rebuilds it."""
        self.cached_instance = None
        self.has_instance = False


class RoleBinding(BaseModel):
    """Binding of a logical role to the class implementing it.

    Attributes:
        role: The role name.
        implementation: A class, or the dotted import path of one.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    role: str = Field(..., min_length=1, description="The logical role name.")
    implementation: Union[type, str] = Field(..., description="Class or dotted path implementing the role.")


class ThrottleRule(BaseModel):
    """Policy mapping the number of recent attempts to a required wait.

    ``delays[n]`` is the wait, in seconds, required after the last attempt
    when ``n`` attempts have been counted. Counts past the end of the list
    use its last element.

    Attributes:
        method: How previous attempts are counted.
        interval: Trailing window for the ``interval`` method.
        delays: Wait in seconds per attempt count.
    """

    model_config = ConfigDict(frozen=True)

    method: ThrottleMethod = Field(default=ThrottleMethod.INTERVAL)
    interval: Optional[timedelta] = Field(default=None)
    delays: List[float] = Field(...)

    @field_validator("interval", mode="before")
    @classmethod
    def _parse_interval(cls, value: Any) -> Optional[timedelta]:
        if value is None:
            return None
        return parse_duration(value)

    @field_validator("delays", mode="before")
    @classmethod
    def _parse_delays(cls, value: Any) -> List[float]:
        if isinstance(value, Mapping):
            # {attempt_count: delay} thresholds, expanded into a per-count list
            thresholds = {_parse_count(count): parse_duration(delay).total_seconds() for count, delay in value.items()}
            if not thresholds:
                return []
            if min(thresholds) < 0:
                raise ValueError("Attempt count thresholds must not be negative")
            expanded: List[float] = []
            current = 0.0
            for count in range(max(thresholds) + 1):
                current = thresholds.get(count, current)
                expanded.append(current)
            return expanded
        if isinstance(value, (list, tuple)):
            return [parse_duration(delay).total_seconds() for delay in value]
        raise ValueError(f"Delays must be a list or a mapping, got {type(value).__name__}")

    @model_validator(mode="after")
    def _check_consistency(self) -> "ThrottleRule":
        if not self.delays:
            raise ValueError("A throttle rule needs at least one delay")
        if self.method == ThrottleMethod.INTERVAL and self.interval is None:
            raise ValueError("The 'interval' method requires an interval")
        return self

    @classmethod
    def from_config(cls, definition: Mapping[str, Any]) -> "ThrottleRule":
        """Build a rule from a configuration mapping.

        Args:
            definition: Mapping with ``method``, ``interval`` and ``delays`` keys.

        Raises:
            ThrottleConfigError: If the definition is malformed.
        """
        if not isinstance(definition, Mapping):
            raise ThrottleConfigError(f"Throttle rule must be a mapping, got {type(definition).__name__}")
        try:
            return cls.model_validate(dict(definition))
        except ValidationError as e:
            raise ThrottleConfigError(f"Invalid throttle rule {dict(definition)!r}: {e}") from e

    def window_start(self, now: datetime) -> Optional[datetime]:
        """Earliest attempt time still counted, or None when every attempt counts."""
        if self.method == ThrottleMethod.INTERVAL and self.interval is not None:
            return now - self.interval
        return None

    def get_delay(self, attempt_count: int) -> timedelta:
        """Required wait after the last attempt for a given attempt count."""
        index = min(max(attempt_count, 0), len(self.delays) - 1)
        return timedelta(seconds=self.delays[index])


class AttemptRecord(BaseModel):
    """Attempt history of a single throttled subject.

    Attributes:
        key: Composite key of throttle type and request fingerprint.
        timestamps: Attempt times, oldest first.
    """

    key: str = Field(...)
    timestamps: List[datetime] = Field(default_factory=list)

    @property
    def last_attempt(self) -> Optional[datetime]:
        return self.timestamps[-1] if self.timestamps else None


class ThrottleDecision(BaseModel):
    """Outcome of a throttle check.

    Attributes:
        allowed: Whether the attempt may proceed.
        delay_until: When the next attempt will be allowed, if denied.
        required_delay: Wait required after the last attempt.
        attempt_count: Number of attempts counted by the rule.
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool = Field(...)
    delay_until: Optional[datetime] = Field(default=None)
    required_delay: timedelta = Field(default=timedelta(0))
    attempt_count: int = Field(default=0)

    def seconds_remaining(self, now: datetime) -> float:
        """Seconds left until ``delay_until``, zero when allowed."""
        if self.allowed or self.delay_until is None:
            return 0.0
        return max((self.delay_until - now).total_seconds(), 0.0)


class HandlerBinding(BaseModel):
    """Binding of an exception type to the handler class serving it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    exception_kind: type = Field(...)
    handler_factory: Callable[..., Any] = Field(...)


class ErrorContext(BaseModel):
    """What the error dispatcher knows about the request that failed."""

    path: str = Field(default="/")
    method: str = Field(default="GET")
    wants_json: bool = Field(default=False)
    extra: Dict[str, Any] = Field(default_factory=dict)


class ErrorPayload(BaseModel):
    """Renderer-agnostic description of an error response.

    Attributes:
        status_code: HTTP status code.
        title: Short user-facing title.
        message: User-facing description.
        details: Debug detail fields, only set when detailed errors are enabled.
        headers: Extra response headers.
    """

    status_code: int = Field(default=500)
    title: str = Field(default="Server Error")
    message: str = Field(default="")
    details: Optional[Dict[str, Any]] = Field(default=None)
    headers: Dict[str, str] = Field(default_factory=dict)


class MailMessage(BaseModel):
    """An outgoing e-mail."""

    to: List[str] = Field(..., min_length=1)
    subject: str = Field(...)
    body: str = Field(default="")
    from_address: Optional[str] = Field(default=None)


class Alert(BaseModel):
    """A flash message persisted between requests."""

    type: str = Field(...)
    message: str = Field(...)
