"""Names that generated client modules import at runtime."""

from __future__ import annotations

from typing import Annotated, Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


class Borrowed:
    """Metadata marking a value that is borrowed for the duration of one call."""

    def __repr__(self) -> str:
        return "Borrowed()"


BORROWED = Borrowed()

# `Ref[Point]` is `Point` to type checkers, annotated as borrowed.
Ref = Annotated[T, BORROWED]


@runtime_checkable
class Rpc(Protocol):
    """The transport a generated client calls through.

    Implementations serialize `payload` (`None`, or a dataclass instance whose fields are the call's
    arguments; a field whose metadata holds `"wire_name"` is serialized under that name), send it under
    `method`, and deserialize the reply into `response_type` (`None` when no value is expected). Failures are
    raised as the transport's own exceptions; generated clients pass them through untouched.
    """

    def call(self, method: str, payload: Any, response_type: Any) -> Any: ...
