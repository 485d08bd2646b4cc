"""Declarations read from interface sources, and the descriptions the analyzer derives from them.

Declarations (`*Decl`, type expressions and patterns) mirror the syntax of an interface source without
judging it. Descriptions are what is left once a declaration has been validated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

# The name of the accessor every generated trait requires. Interface methods may not use it.
RESERVED_ACCESSOR_NAME = "get_rpc_client"

# The directive name that carries per-method options.
RPC_ATTRIBUTE_NAME = "rpc"


# ===== Type expressions =====


@dataclass(frozen=True)
class NamedType:
    """A (possibly dotted) type name, e.g. `int` or `models.Point`.

    Attributes:
        name: The type name as written.
        arguments: Type arguments; a non-empty tuple makes this a generic or compound type.
    """

    name: str
    arguments: tuple[TypeExpr, ...] = ()

    def __str__(self) -> str:
        if self.arguments:
            return f"{self.name}[{', '.join(str(a) for a in self.arguments)}]"
        return self.name


@dataclass(frozen=True)
class ReferenceType:
    """A borrowed reference to another type, written `Ref[T]`."""

    target: TypeExpr

    def __str__(self) -> str:
        return f"Ref[{self.target}]"


@dataclass(frozen=True)
class TupleType:
    """An anonymous tuple of types."""

    elements: tuple[TypeExpr, ...]

    def __str__(self) -> str:
        return f"({', '.join(str(e) for e in self.elements)})"


@dataclass(frozen=True)
class UnknownType:
    """Any other type syntax, kept as source text for diagnostics."""

    text: str

    def __str__(self) -> str:
        return self.text


TypeExpr = Union[NamedType, ReferenceType, TupleType, UnknownType]


# ===== Parameter patterns =====


@dataclass(frozen=True)
class IdentPattern:
    """A parameter bound to a single name."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class TuplePattern:
    """A destructuring pattern such as `(x, y)`."""

    names: tuple[str, ...]

    def __str__(self) -> str:
        return f"({', '.join(self.names)})"


@dataclass(frozen=True)
class WildcardPattern:
    """An anonymous parameter."""

    def __str__(self) -> str:
        return "_"


@dataclass(frozen=True)
class StarPattern:
    """A variadic parameter, `*args` or `**kwargs`."""

    name: str
    double: bool = False

    def __str__(self) -> str:
        return f"{'**' if self.double else '*'}{self.name}"


Pattern = Union[IdentPattern, TuplePattern, WildcardPattern, StarPattern]


# ===== Declarations =====


@dataclass(frozen=True)
class ParamDecl:
    """A formal parameter as declared.

    Attributes:
        pattern: What the parameter binds.
        type: The declared type, or None for an untyped parameter.
        lineno: Source line, if known.
        wire_name: The field name on the wire, when it differs from the bound name.
    """

    pattern: Pattern
    type: TypeExpr | None
    lineno: int | None = None
    wire_name: str | None = None


@dataclass(frozen=True)
class Expression:
    """A directive value that is not a literal, kept as source text."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class AttributeArgument:
    """One argument of a directive; `key` is None for positional arguments."""

    key: str | None
    value: Any


@dataclass(frozen=True)
class AttributeDecl:
    """A directive attached to a method, e.g. `@rpc(name="ping2")`.

    Attributes:
        name: The directive name (the last component of a dotted decorator).
        arguments: The arguments in the order written.
        bare: True when the directive was used without a call, e.g. `@rpc`.
        lineno: Source line, if known.
    """

    name: str
    arguments: tuple[AttributeArgument, ...] = ()
    bare: bool = False
    lineno: int | None = None


@dataclass(frozen=True)
class MethodDecl:
    """A method of an interface as declared. `params[0]` is the implicit receiver."""

    name: str
    params: tuple[ParamDecl, ...]
    return_type: TypeExpr | None = None
    attributes: tuple[AttributeDecl, ...] = ()
    is_async: bool = False
    type_params: tuple[str, ...] = ()
    lineno: int | None = None


@dataclass(frozen=True)
class InterfaceDecl:
    """An interface: a named, ordered collection of methods.

    Attributes:
        name: The interface name; the generated trait takes this name.
        methods: Methods in declaration order.
        imports: Import statements the generated module needs for the types used by the methods.
        lineno: Source line, if known.
    """

    name: str
    methods: tuple[MethodDecl, ...] = ()
    imports: tuple[str, ...] = ()
    lineno: int | None = None


@dataclass(frozen=True)
class ItemDecl:
    """Any item that is not an interface (a function, an assignment, ...)."""

    name: str
    kind: str
    lineno: int | None = None


# ===== Descriptions =====


@dataclass(frozen=True)
class ParameterDescription:
    """A classified parameter: its name, the name of its base type, and whether it is borrowed.

    `wire_name` is set when the payload field is serialized under another name than `name`.
    """

    name: str
    type_name: str
    by_reference: bool = False
    wire_name: str | None = None


@dataclass(frozen=True)
class MethodAnnotation:
    """Per-method directives.

    Attributes:
        name: Wire-name override; the method name is used when absent.
        result_field: Name of the reply field that holds the method's result.
    """

    name: str | None = None
    result_field: str | None = None


@dataclass(frozen=True)
class MethodDescription:
    """A validated method.

    Attributes:
        name: The method name in generated code.
        parameters: Non-receiver parameters in declaration order.
        return_type: The return type name, or None when the method returns no value.
        annotation: The method's directives.
    """

    name: str
    parameters: tuple[ParameterDescription, ...] = ()
    return_type: str | None = None
    annotation: MethodAnnotation = field(default_factory=MethodAnnotation)

    @property
    def wire_name(self) -> str:
        """The name identifying the method to the transport."""
        if self.annotation.name is not None:
            return self.annotation.name
        return self.name


@dataclass(frozen=True)
class InterfaceDescription:
    """A validated interface, ready to be assembled."""

    name: str
    methods: tuple[MethodDescription, ...] = ()
    imports: tuple[str, ...] = ()
