"""Resolve the `rpc` directives of a method.

Two directives are recognized, each at most once per method:

- `name`: the wire name to call instead of the method name.
- `result_field`: the reply field that holds the method's result.
"""

from __future__ import annotations

import keyword
from collections.abc import Iterable

from rpc_client_generator.errors import MalformedAnnotation
from rpc_client_generator.model import RPC_ATTRIBUTE_NAME, AttributeDecl, MethodAnnotation

NAME_DIRECTIVE = "name"
RESULT_FIELD_DIRECTIVE = "result_field"

KNOWN_DIRECTIVES = (NAME_DIRECTIVE, RESULT_FIELD_DIRECTIVE)


def _check_value(key: str, value: object, method: str | None, lineno: int | None) -> str:
    if not isinstance(value, str):
        raise MalformedAnnotation(
            f"'{key}' expects a string literal, got {value!r}",
            method=method,
            lineno=lineno,
        )

    if key == NAME_DIRECTIVE and not value:
        raise MalformedAnnotation("'name' must not be empty", method=method, lineno=lineno)

    if key == RESULT_FIELD_DIRECTIVE and (not value.isidentifier() or keyword.iskeyword(value)):
        raise MalformedAnnotation(
            f"'result_field' must be a valid field name, got '{value}'",
            method=method,
            lineno=lineno,
        )

    return value


def resolve_annotation(attributes: Iterable[AttributeDecl], method: str | None = None) -> MethodAnnotation:
    """Extract the directives of a method from its attributes.

    Attributes not named `rpc` belong to someone else and are ignored.

    Args:
        attributes (Iterable[AttributeDecl]): The method's attributes, in declaration order.
        method (str | None, optional): The method name, for diagnostics. Defaults to None.

    Raises:
        MalformedAnnotation: On positional arguments, unknown or repeated keys, and invalid values.

    Returns:
        MethodAnnotation: The resolved directives.
    """
    found: dict[str, str] = {}

    for attribute in attributes:
        if attribute.name != RPC_ATTRIBUTE_NAME:
            continue

        for argument in attribute.arguments:
            if argument.key is None:
                raise MalformedAnnotation(
                    f"positional argument {argument.value!r} in '{RPC_ATTRIBUTE_NAME}', "
                    f"expected one of: {', '.join(KNOWN_DIRECTIVES)}",
                    method=method,
                    lineno=attribute.lineno,
                )

            if argument.key not in KNOWN_DIRECTIVES:
                raise MalformedAnnotation(
                    f"unknown directive '{argument.key}', expected one of: {', '.join(KNOWN_DIRECTIVES)}",
                    method=method,
                    lineno=attribute.lineno,
                )

            if argument.key in found:
                raise MalformedAnnotation(
                    f"duplicate directive '{argument.key}'",
                    method=method,
                    lineno=attribute.lineno,
                )

            found[argument.key] = _check_value(argument.key, argument.value, method, attribute.lineno)

    return MethodAnnotation(name=found.get(NAME_DIRECTIVE), result_field=found.get(RESULT_FIELD_DIRECTIVE))
