"""Pytest configuration and fixtures for rpc client generator tests."""

from __future__ import annotations

import sys
import types
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from rpc_client_generator.model import (
    AttributeArgument,
    AttributeDecl,
    IdentPattern,
    InterfaceDecl,
    MethodDecl,
    NamedType,
    ParamDecl,
    ReferenceType,
)

RECEIVER = ParamDecl(pattern=IdentPattern("self"), type=None)

# The same interface, declared in Python and as a capnproto schema.
NAVIGATION_PY = '''\
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from rpc_client_generator.markers import Ref, rpc, rpc_client


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@rpc_client
class Navigator(Protocol):
    @rpc(name="nav/move", result_field="position")
    def move(self, origin: Ref[Point], steps: int) -> Point: ...

    def stop(self) -> None: ...
'''

NAVIGATION_CAPNP = """\
@0xd1c2b3a4e5f60718;

annotation rpcName(method) :Text;

struct Point {
    x @0 :Int32;
    y @1 :Int32;
}

interface Navigator {
    move @0 (origin :Point, steps :Int32) -> (position :Point) $rpcName("nav/move");
    stop @1 () -> ();
}
"""


@pytest.fixture
def interface_dir(tmp_path: Path, monkeypatch) -> Path:
    """A directory holding `navigation.py` and `navigation.capnp`, importable for the duration of the test."""
    (tmp_path / "navigation.py").write_text(NAVIGATION_PY)
    (tmp_path / "navigation.capnp").write_text(NAVIGATION_CAPNP)

    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.delitem(sys.modules, "navigation", raising=False)
    return tmp_path


class FakeRpc:
    """A transport that records every call and answers through a responder.

    The responder gets `(method, payload, response_type)` and returns the reply. Exceptions it raises
    reach the caller of the generated method.
    """

    def __init__(self, responder: Callable[[str, Any, Any], Any] | None = None):
        self.calls: list[tuple[str, Any, Any]] = []
        self._responder = responder

    def call(self, method: str, payload: Any, response_type: Any) -> Any:
        self.calls.append((method, payload, response_type))
        if self._responder is None:
            return None
        return self._responder(method, payload, response_type)


@pytest.fixture
def fake_rpc() -> type[FakeRpc]:
    """The recording transport class, to be instantiated with a responder."""
    return FakeRpc


@pytest.fixture
def load_generated(monkeypatch):
    """Execute generated source as a real module and return it.

    The module is registered in `sys.modules` for the duration of the test, since dataclasses look up
    their defining module.
    """
    counter = iter(range(1000))

    def _load(source: str, name: str | None = None) -> types.ModuleType:
        module_name = name or f"_generated_client_{next(counter)}"
        module = types.ModuleType(module_name)
        monkeypatch.setitem(sys.modules, module_name, module)
        exec(compile(source, f"<{module_name}>", "exec"), module.__dict__)
        return module

    return _load


def param(name: str, type_name: str, by_reference: bool = False) -> ParamDecl:
    """A parameter bound to a plain name, e.g. `param("count", "int")`."""
    type_expr = NamedType(type_name)
    if by_reference:
        type_expr = ReferenceType(type_expr)
    return ParamDecl(pattern=IdentPattern(name), type=type_expr)


def rpc_attribute(**directives: Any) -> AttributeDecl:
    """An `@rpc(...)` attribute with the given keyword directives."""
    return AttributeDecl(
        name="rpc",
        arguments=tuple(AttributeArgument(key=k, value=v) for k, v in directives.items()),
    )


def method(
    method_name: str,
    /,
    *params: ParamDecl,
    returns: str | None = None,
    **directives: Any,
) -> MethodDecl:
    """A method with a receiver, the given parameters and, optionally, `rpc` directives."""
    attributes = (rpc_attribute(**directives),) if directives else ()
    return MethodDecl(
        name=method_name,
        params=(RECEIVER, *params),
        return_type=NamedType(returns) if returns is not None else None,
        attributes=attributes,
    )


@pytest.fixture
def pinger() -> InterfaceDecl:
    """An interface exercising every payload and response shape."""
    return InterfaceDecl(
        name="Pinger",
        methods=(
            method("ping", param("count", "int"), returns="int", name="ping2", result_field="value"),
            method("echo", param("text", "str"), param("times", "int"), returns="str"),
            method("digest", param("amount", "Decimal", by_reference=True), returns="bytes"),
            method("reset"),
        ),
        imports=("from decimal import Decimal",),
    )
