"""The generation pipeline: validate an interface declaration, then assemble its client.

Generation is all-or-nothing. Any failure aborts the whole interface, since a client missing some
methods would be a silent loss of capability.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rpc_client_generator.analyzer import analyze_parameter, analyze_return
from rpc_client_generator.annotations import resolve_annotation
from rpc_client_generator.errors import (
    InvalidAttachmentPoint,
    ReservedNameCollision,
    UnsupportedMethodShape,
    ValidationError,
)
from rpc_client_generator.model import (
    RESERVED_ACCESSOR_NAME,
    InterfaceDecl,
    InterfaceDescription,
    ItemDecl,
    MethodDecl,
    MethodDescription,
)
from rpc_client_generator.shapes import GeneratedArtifact
from rpc_client_generator.writer import Writer, assemble

logger = logging.getLogger(__name__)


def analyze_method(method: MethodDecl) -> MethodDescription:
    """Validate one method declaration.

    Args:
        method (MethodDecl): The method as declared; its first parameter is the receiver.

    Raises:
        ValidationError: If the method, one of its parameters, its return type or its directives are
            unsupported.

    Returns:
        MethodDescription: The analyzed method.
    """
    if method.is_async:
        raise UnsupportedMethodShape("coroutine methods are not supported", method=method.name, lineno=method.lineno)

    if method.type_params:
        raise UnsupportedMethodShape(
            f"generic methods are not supported (type parameters: {', '.join(method.type_params)})",
            method=method.name,
            lineno=method.lineno,
        )

    if not method.params:
        raise UnsupportedMethodShape("methods must take a receiver", method=method.name, lineno=method.lineno)

    annotation = resolve_annotation(method.attributes, method=method.name)

    # The receiver is implicit and never part of the payload.
    parameters = tuple(analyze_parameter(param, method=method.name) for param in method.params[1:])

    return MethodDescription(
        name=method.name,
        parameters=parameters,
        return_type=analyze_return(method.return_type, method=method.name),
        annotation=annotation,
    )


def analyze_interface(item: InterfaceDecl | ItemDecl) -> InterfaceDescription:
    """Validate an interface declaration.

    The reserved accessor name is checked for every method before any method is analyzed.

    Args:
        item (InterfaceDecl | ItemDecl): The item the generator was applied to.

    Raises:
        InvalidAttachmentPoint: If the item is not an interface.
        ReservedNameCollision: If a method is named like the transport accessor.
        ValidationError: If any method is unsupported.

    Returns:
        InterfaceDescription: The analyzed interface.
    """
    if not isinstance(item, InterfaceDecl):
        raise InvalidAttachmentPoint(
            f"clients can only be generated for interfaces, '{item.name}' is a {item.kind}",
            interface=item.name,
            lineno=item.lineno,
        )

    for method in item.methods:
        if method.name == RESERVED_ACCESSOR_NAME:
            raise ReservedNameCollision(
                f"'{RESERVED_ACCESSOR_NAME}' is a reserved name",
                interface=item.name,
                method=method.name,
                lineno=method.lineno,
            )

    try:
        methods = tuple(analyze_method(method) for method in item.methods)
    except ValidationError as e:
        if e.interface is None:
            e.interface = item.name
        raise

    return InterfaceDescription(name=item.name, methods=methods, imports=item.imports)


def generate_client(item: InterfaceDecl | ItemDecl) -> GeneratedArtifact:
    """Generate the client of one interface.

    Args:
        item (InterfaceDecl | ItemDecl): The item the generator was applied to.

    Raises:
        ValidationError: If the item is not a supported interface. No artifact is produced.

    Returns:
        GeneratedArtifact: The generated client.
    """
    return assemble(analyze_interface(item))


def generate_module(items: Iterable[InterfaceDecl | ItemDecl], source_name: str = "") -> str:
    """Generate one module holding the clients of several interfaces.

    Every interface is analyzed before anything is assembled, so that one invalid interface leaves no
    output at all.

    Args:
        items (Iterable[InterfaceDecl | ItemDecl]): The items the generator was applied to.
        source_name (str, optional): Name of the interface source, for the module docstring. Defaults to "".

    Raises:
        ValidationError: If any item is not a supported interface.

    Returns:
        str: The module source.
    """
    interfaces = [analyze_interface(item) for item in items]

    writer = Writer(source_name)
    writer.gen_interfaces(interfaces)

    logger.debug("Generated %d client(s) for '%s'.", len(interfaces), source_name)
    return writer.dumps()
