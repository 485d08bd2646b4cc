"""Markers for interface files.

Interface files are read, not imported, by the generator. These no-op markers keep them importable, so
that type checkers and the interface's own tests can use them:

    from typing import Protocol

    from rpc_client_generator.markers import Ref, rpc, rpc_client


    @rpc_client
    class Pinger(Protocol):
        @rpc(name="ping2", result_field="value")
        def ping(self, count: int, origin: Ref[Host]) -> int: ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from rpc_client_generator.runtime import Ref

__all__ = ["Ref", "rpc", "rpc_client"]

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)


def rpc_client(cls: C | None = None) -> Any:
    """Mark a class as an interface to generate a client for. Usable as `@rpc_client` or `@rpc_client()`."""
    if cls is None:
        return rpc_client
    return cls


def rpc(*, name: str | None = None, result_field: str | None = None) -> Callable[[F], F]:
    """Attach directives to an interface method.

    Args:
        name (str | None, optional): Wire name to call instead of the method name. Defaults to None.
        result_field (str | None, optional): Reply field that holds the result. Defaults to None.
    """

    def decorator(func: F) -> F:
        return func

    return decorator
