"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import keyword

INDENT = "    "


def sanitize_name(name: str) -> str:
    """Sanitize a name to avoid Python keywords.

    If the name is a Python keyword, append an underscore.
    E.g. 'lambda' becomes 'lambda_', 'class' becomes 'class_'.

    Args:
        name (str): The original name.

    Returns:
        str: The sanitized name.
    """
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def replace_capnp_suffix(original: str) -> str:
    """If found, replaces the .capnp suffix in a string with _capnp and converts hyphens to underscores.

    This matches the behavior of pycapnp which converts hyphens to underscores in module names
    to create valid Python identifiers.

    For example, `some-module.capnp` becomes `some_module_capnp`.

    Args:
        original (str): The string to replace the suffix in.

    Returns:
        str: The string with the replaced suffix and hyphens converted to underscores.
    """
    result = original
    if result.endswith(".capnp"):
        result = result.replace(".capnp", "_capnp")

    # Replace hyphens with underscores to create valid Python identifiers
    result = result.replace("-", "_")

    return result


def indent(lines: list[str], levels: int = 1) -> list[str]:
    """Indent every non-empty line.

    Args:
        lines (list[str]): The lines to indent.
        levels (int, optional): Number of indentation levels. Defaults to 1.

    Returns:
        list[str]: The indented lines.
    """
    return [f"{INDENT * levels}{line}" if line else line for line in lines]


def join_parameters(parameters: list[str] | None) -> str:
    """Joins parameters by means of ', '.

    Args:
        parameters (list[str] | None): The parameters to join.

    Returns:
        str: The joined parameters.
    """
    if parameters:
        return ", ".join(str(p) for p in parameters if p)

    else:
        return ""


def new_group(name: str, members: list[str]) -> str:
    """Create a string for a group name and its members.

    For example, when the group name is 'Generic', and the member is '_RpcT',
    the output will be 'Generic[_RpcT]'.

    Args:
        name (str): The name of the group.
        members (list[str]): The members of the group

    Returns:
        str: The resulting group string.
    """
    return f"{name}[{join_parameters(members)}]"


def new_typed_parameter(name: str, type_name: str) -> str:
    """Create a string for an annotated parameter, e.g. `count: int`."""
    return f"{name}: {type_name}"


def new_function(
    name: str,
    parameters: list[str] | None = None,
    return_type: str | None = None,
    body: list[str] | None = None,
) -> list[str]:
    """Create the lines of a function.

    Args:
        name (str): The function name.
        parameters (list[str] | None, optional): The function parameters, if any. Defaults to None.
        return_type (str | None, optional): The function's return type. Defaults to None.
        body (list[str] | None, optional): The unindented body lines. Without a body, the function is a
            one-line declaration ending in `...`. Defaults to None.

    Returns:
        list[str]: The function lines.
    """
    if return_type is None:
        return_type = "None"

    signature = f"def {name}({join_parameters(parameters)}) -> {return_type}:"

    if not body:
        return [f"{signature} ..."]

    return [signature, *indent(body)]


def new_decorator(name: str, parameters: list[str] | None = None) -> str:
    """Create a new decorator.

    Args:
        name (str): The name of the decorator.
        parameters (list[str] | None, optional): The parameters (args, kwargs) of the decorator,
            if any. Defaults to None.

    Returns:
        str: The decorator string.
    """
    if parameters:
        return f"@{name}({join_parameters(parameters)})"

    else:
        return f"@{name}"


def new_class_declaration(name: str, parameters: list[str] | None = None) -> str:
    """Creates a string for declaring a class.

    For example, for a name of 'PingerClient' and a list of parameters that is 'Pinger[_RpcT]', the output
    will be 'class PingerClient(Pinger[_RpcT]):'.

    If no parameters are provided, the output is just 'class PingerClient:'.

    Args:
        name (str): The class name.
        parameters (list[str] | None, optional):
            A list of parameters that are part of the class declaration. Defaults to None.

    Returns:
        str: The class declaration.
    """
    if parameters:
        return f"class {name}({join_parameters(parameters)}):"

    else:
        return f"class {name}:"


def new_docstring(text: str) -> str:
    """Create a one-line docstring."""
    return f'"""{text}"""'
