"""Classify method parameters and return types.

Only two parameter shapes are supported: a name bound to a plain named type, and a name bound to a
reference (`Ref[T]`) to a plain named type. Everything else is rejected with an explicit error rather
than guessed at.
"""

from __future__ import annotations

from rpc_client_generator.errors import UnsupportedParameterShape, UnsupportedReturnShape
from rpc_client_generator.model import (
    IdentPattern,
    NamedType,
    ParamDecl,
    ParameterDescription,
    ReferenceType,
    TypeExpr,
)

# Return annotations that mean "no value".
UNIT_TYPE_NAMES = frozenset({"None", "NoneType"})


def _plain_type_name(type_expr: TypeExpr) -> str | None:
    """Return the name of a plain named type, or None for any other type expression."""
    if isinstance(type_expr, NamedType) and not type_expr.arguments:
        return type_expr.name
    return None


def analyze_parameter(param: ParamDecl, method: str | None = None) -> ParameterDescription:
    """Classify a non-receiver parameter.

    Args:
        param (ParamDecl): The parameter as declared.
        method (str | None, optional): The enclosing method, for diagnostics. Defaults to None.

    Raises:
        UnsupportedParameterShape: If the pattern is not a plain name, the parameter is untyped, or the
            type is neither a plain named type nor a reference to one.

    Returns:
        ParameterDescription: The classified parameter.
    """
    if not isinstance(param.pattern, IdentPattern):
        raise UnsupportedParameterShape(
            f"unsupported parameter pattern '{param.pattern}', parameters must be plain names",
            method=method,
            parameter=str(param.pattern),
            lineno=param.lineno,
        )

    name = param.pattern.name

    if param.type is None:
        raise UnsupportedParameterShape(
            "untyped parameters are not supported",
            method=method,
            parameter=name,
            lineno=param.lineno,
        )

    type_name = _plain_type_name(param.type)
    if type_name is not None:
        return ParameterDescription(name=name, type_name=type_name, by_reference=False, wire_name=param.wire_name)

    if isinstance(param.type, ReferenceType):
        type_name = _plain_type_name(param.type.target)
        if type_name is not None:
            return ParameterDescription(name=name, type_name=type_name, by_reference=True, wire_name=param.wire_name)

    raise UnsupportedParameterShape(
        f"unsupported parameter type '{param.type}'",
        method=method,
        parameter=name,
        lineno=param.lineno,
    )


def analyze_return(return_type: TypeExpr | None, method: str | None = None) -> str | None:
    """Classify a declared return type.

    Args:
        return_type (TypeExpr | None): The declared return type, None if absent.
        method (str | None, optional): The enclosing method, for diagnostics. Defaults to None.

    Raises:
        UnsupportedReturnShape: If the return type is not a plain named type.

    Returns:
        str | None: The return type name, or None when the method returns no value.
    """
    if return_type is None:
        return None

    type_name = _plain_type_name(return_type)
    if type_name is None:
        raise UnsupportedReturnShape(f"unsupported return type '{return_type}'", method=method)

    if type_name in UNIT_TYPE_NAMES:
        return None

    return type_name
