"""Generation-time failures.

Every error aborts the whole generation pass. None of them is raised by generated code at runtime:
transport failures reach the caller of a generated method as the transport's own exceptions.
"""

from __future__ import annotations


class ValidationError(Exception):
    """Raised when an interface description violates the generator's structural assumptions.

    The diagnostic names the offending interface, method and parameter where they are known, so that
    the host can report it against the source location.
    """

    def __init__(
        self,
        message: str,
        *,
        interface: str | None = None,
        method: str | None = None,
        parameter: str | None = None,
        lineno: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.interface = interface
        self.method = method
        self.parameter = parameter
        self.lineno = lineno

    @property
    def location(self) -> str:
        """Dotted path to the offending element, e.g. `Pinger.ping(count)`."""
        path = ".".join(part for part in (self.interface, self.method) if part)
        if self.parameter:
            path = f"{path}({self.parameter})"
        return path

    def __str__(self) -> str:
        prefix = self.location
        if self.lineno is not None:
            prefix = f"{prefix} (line {self.lineno})" if prefix else f"line {self.lineno}"
        if prefix:
            return f"{prefix}: {self.message}"
        return self.message


class UnsupportedParameterShape(ValidationError):
    """A parameter's pattern or type could not be classified."""


class UnsupportedReturnShape(ValidationError):
    """A return type is not a plain named type."""


class UnsupportedMethodShape(ValidationError):
    """A method cannot be turned into a remote call (coroutine, generic or without receiver)."""


class MalformedAnnotation(ValidationError):
    """A method's `rpc` directives could not be parsed."""


class ReservedNameCollision(ValidationError):
    """A method reuses the name of the transport accessor."""


class InvalidAttachmentPoint(ValidationError):
    """The generator was applied to something that is not an interface."""
