from typing import Any, List, Optional


class AppWireException(Exception):
    """Base exception for service wiring errors."""


class CircularDependencyError(AppWireException):
    """Raised when a service factory ends up resolving itself.

    Attributes:
        dependency_chain: Service names involved in the cycle, in resolution order.
    """

    def __init__(self, dependency_chain: List[str]) -> None:
        self.dependency_chain = dependency_chain
        message = f"Circular dependency detected: {' -> '.join(dependency_chain)}"
        super().__init__(message)


class UnknownServiceError(AppWireException):
    """Raised when a service name has never been registered.

    This occurs when:
    - Resolving a name with no registration.
    - Extending a name with no prior registration.

    Attributes:
        name: The service name that was looked up.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Service '{name}' is not registered")


class UnknownRoleError(AppWireException):
    """Raised when the class mapper has no usable class for a role.

    Attributes:
        role: The role that was looked up.
        reason: Optional reason for the failure.
    """

    def __init__(self, role: str, reason: Optional[str] = None) -> None:
        self.role = role
        self.reason = reason
        message = f"There is no class mapped to role '{role}'"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class UnsupportedDriverError(AppWireException):
    """Raised when configuration selects a driver the factory does not know.

    Attributes:
        setting: The configuration key holding the driver name.
        value: The unsupported value.
    """

    def __init__(self, setting: str, value: Any) -> None:
        self.setting = setting
        self.value = value
        super().__init__(f"Bad '{setting}' type '{value}' specified in configuration")


class ThrottleConfigError(AppWireException):
    """Raised for malformed throttle rule definitions.

    This occurs when:
    - The method is not one of the supported throttle methods.
    - An interval rule has no interval, or the interval cannot be parsed.
    - The delay list is empty or contains negative values.
    """


class HandlerNotFoundError(AppWireException):
    """Raised when no exception handler, not even a default one, can serve an error.

    Attributes:
        exception_kind: The error type that could not be matched.
    """

    def __init__(self, exception_kind: Optional[type] = None) -> None:
        self.exception_kind = exception_kind
        if exception_kind is None:
            message = "No default exception handler is configured"
        else:
            message = f"No exception handler registered for {exception_kind.__name__} and no default handler configured"
        super().__init__(message)


class HttpException(AppWireException):
    """Error carrying an HTTP status code and a user-facing message.

    Attributes:
        status_code: HTTP status code the error should be rendered with.
        title: Short user-facing title.
        message: User-facing description.
    """

    default_status_code = 500
    default_title = "Server Error"
    default_message = "The server encountered an error it could not recover from."

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        title: Optional[str] = None,
    ) -> None:
        self.status_code = status_code or self.default_status_code
        self.title = title or self.default_title
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestException(HttpException):
    """The request could not be understood."""

    default_status_code = 400
    default_title = "Bad Request"
    default_message = "The request could not be processed."


class NotFoundException(HttpException):
    """The requested resource does not exist."""

    default_status_code = 404
    default_title = "Page Not Found"
    default_message = "The page you requested could not be found."


class MailerException(AppWireException):
    """Raised when a mail transport fails to deliver a message."""
