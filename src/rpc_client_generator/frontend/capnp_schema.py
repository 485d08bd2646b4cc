"""Read interface declarations from capnproto schemas.

Every `interface` node of a schema becomes an interface declaration:

- primitive, text, data and enum parameters are passed by value, struct and interface parameters by
  reference; lists, groups, `AnyPointer` and generic brands are passed through as types the analyzer
  rejects,
- a method with a single named result extracts that field, a method returning a struct directly gets the
  struct, a method without results returns nothing,
- the `$rpcName("...")` annotation overrides the wire name.

Note: This reader requires pycapnp >= 2.0.0.
"""

from __future__ import annotations

import logging
import os.path
from dataclasses import dataclass
from types import ModuleType
from typing import Any

import capnp

from rpc_client_generator import capnp_types, helper
from rpc_client_generator.errors import UnsupportedReturnShape
from rpc_client_generator.model import (
    RPC_ATTRIBUTE_NAME,
    AttributeArgument,
    AttributeDecl,
    Expression,
    IdentPattern,
    InterfaceDecl,
    MethodDecl,
    NamedType,
    ParamDecl,
    ReferenceType,
    TypeExpr,
    UnknownType,
)

if hasattr(capnp, "remove_import_hook"):
    capnp.remove_import_hook()

logger = logging.getLogger(__name__)

RECEIVER = ParamDecl(pattern=IdentPattern("self"), type=None)


@dataclass(frozen=True)
class RegisteredNode:
    """A named schema node, with enough context to refer to it from generated code.

    Attributes:
        scoped_name: Dotted name within its file, e.g. `Outer.Inner`.
        module_name: Python module that exposes the file, e.g. `addressbook_capnp`.
        kind: The node kind, e.g. `struct` or `annotation`.
        schema: The parsed schema of the node.
    """

    scoped_name: str
    module_name: str
    kind: str
    schema: Any

    @property
    def short_name(self) -> str:
        return self.scoped_name.rsplit(".", 1)[-1]

    @property
    def top_level_name(self) -> str:
        return self.scoped_name.split(".", 1)[0]


def module_name_for(path: str) -> str:
    """Python module name of a schema file, e.g. `addressbook_capnp` for `schemas/addressbook.capnp`."""
    return helper.replace_capnp_suffix(os.path.basename(path))


class SchemaReader:
    """Reads the interfaces of one loaded schema module."""

    def __init__(self, module: ModuleType, module_registry: capnp_types.ModuleRegistryType):
        """Initialize the reader.

        Args:
            module (ModuleType): The loaded schema module to read interfaces from.
            module_registry (ModuleRegistryType): All loaded modules, for resolving types across files.
        """
        self._module = module
        self._module_registry = module_registry
        self._module_name = ""
        self.nodes: dict[int, RegisteredNode] = {}

        # (module name, top-level name) pairs used by the interface being read.
        self._used_types: set[tuple[str, str]] = set()

        for path, registered_module in module_registry.values():
            self._register_nested(registered_module.schema, [], module_name_for(path))
            if registered_module is module:
                self._module_name = module_name_for(path)

        if not self._module_name:
            self._module_name = module_name_for(getattr(module, "__file__", "") or "schema.capnp")
            self._register_nested(module.schema, [], self._module_name)

    def _register_nested(self, schema: Any, scope: list[str], module_name: str):
        """Register all nodes nested below a schema, depth first."""
        for nested_node in schema.node.nestedNodes:
            nested_schema = schema.get_nested(nested_node.name)
            scoped = [*scope, nested_node.name]
            self.nodes[nested_node.id] = RegisteredNode(
                scoped_name=".".join(scoped),
                module_name=module_name,
                kind=str(nested_schema.node.which()),
                schema=nested_schema,
            )
            self._register_nested(nested_schema, scoped, module_name)

    def _type_name(self, type_id: int) -> str | None:
        """Resolve a type id to the name generated code refers to it by, recording the import it needs."""
        registered = self.nodes.get(type_id)
        if registered is None:
            logger.debug("Could not resolve type with ID %#x.", type_id)
            return None

        self._used_types.add((registered.module_name, registered.top_level_name))
        return registered.scoped_name

    def _named(self, type_id: int, by_reference: bool) -> TypeExpr:
        name = self._type_name(type_id)
        if name is None:
            return UnknownType(f"<unresolved type {type_id:#x}>")

        if by_reference:
            return ReferenceType(NamedType(name))
        return NamedType(name)

    def type_expr(self, type_reader: Any, by_reference: bool = True) -> TypeExpr:
        """Convert a capnproto type into a type expression.

        Args:
            type_reader (Any): The type reader of a slot.
            by_reference (bool, optional): Whether struct and interface types are borrowed. Results are
                never borrowed. Defaults to True.

        Returns:
            TypeExpr: The type expression.
        """
        which = type_reader.which()

        try:
            return NamedType(capnp_types.CAPNP_TYPE_TO_PYTHON[which])
        except KeyError:
            pass

        if which == capnp_types.CapnpElementType.ENUM:
            return self._named(type_reader.enum.typeId, by_reference=False)

        if which == capnp_types.CapnpElementType.STRUCT:
            if len(type_reader.struct.brand.scopes) > 0:
                name = self._type_name(type_reader.struct.typeId) or "<unresolved>"
                return NamedType(name, (UnknownType("brand"),))
            return self._named(type_reader.struct.typeId, by_reference)

        if which == capnp_types.CapnpElementType.INTERFACE:
            return self._named(type_reader.interface.typeId, by_reference)

        if which == capnp_types.CapnpElementType.LIST:
            element = self.type_expr(type_reader.list.elementType, by_reference=False)
            return NamedType("Sequence", (element,))

        return UnknownType(str(which))

    def _field_type(self, field: Any, by_reference: bool) -> TypeExpr:
        if field.which() == capnp_types.CapnpFieldType.GROUP:
            return UnknownType(f"group {field.name}")
        return self.type_expr(field.slot.type, by_reference)

    def _attributes(self, method_name: str, method_node: Any) -> tuple[AttributeDecl, ...]:
        arguments: list[AttributeArgument] = []

        for annotation in method_node.annotations:
            registered = self.nodes.get(annotation.id)
            if registered is None or registered.kind != capnp_types.CapnpElementType.ANNOTATION:
                continue

            if registered.short_name == capnp_types.CapnpAnnotation.RPC_NAME:
                value = annotation.value
                if value.which() == "text":
                    arguments.append(AttributeArgument(key="name", value=value.text))
                else:
                    arguments.append(AttributeArgument(key="name", value=Expression(str(value.which()))))

        if not arguments and helper.sanitize_name(method_name) != method_name:
            # Keywords are renamed in generated code but keep their name on the wire.
            arguments.append(AttributeArgument(key="name", value=method_name))

        if not arguments:
            return ()
        return (AttributeDecl(name=RPC_ATTRIBUTE_NAME, arguments=tuple(arguments)),)

    def method_decl(self, interface_name: str, method_node: Any, method: Any) -> MethodDecl:
        """Convert an interface method into a method declaration.

        Args:
            interface_name (str): The enclosing interface, for diagnostics.
            method_node (Any): The method as listed in the interface node (name, annotations).
            method (Any): The runtime method, holding the parameter and result struct schemas.

        Raises:
            UnsupportedReturnShape: If the method has more than one named result.

        Returns:
            MethodDecl: The method declaration.
        """
        name = method_node.name
        attributes = list(self._attributes(name, method_node))

        params = [RECEIVER]
        for field in method.param_type.node.struct.fields:
            param_name = helper.sanitize_name(field.name)
            params.append(
                ParamDecl(
                    pattern=IdentPattern(param_name),
                    type=self._field_type(field, by_reference=True),
                    # Keywords are renamed in generated code but keep their name on the wire.
                    wire_name=field.name if param_name != field.name else None,
                )
            )

        return_type: TypeExpr | None = None
        result_schema = method.result_type
        if not result_schema.node.displayName.endswith(capnp_types.RESULTS_SUFFIX):
            # `method() -> Struct` returns the struct itself.
            return_type = self._named(result_schema.node.id, by_reference=False)
        else:
            result_fields = list(result_schema.node.struct.fields)
            if len(result_fields) > 1:
                raise UnsupportedReturnShape(
                    f"{len(result_fields)} result fields, at most one is supported",
                    interface=interface_name,
                    method=name,
                )
            if result_fields:
                result_field = result_fields[0]
                return_type = self._field_type(result_field, by_reference=False)
                result_argument = AttributeArgument(key="result_field", value=result_field.name)
                attributes.append(AttributeDecl(name=RPC_ATTRIBUTE_NAME, arguments=(result_argument,)))

        return MethodDecl(
            name=helper.sanitize_name(name),
            params=tuple(params),
            return_type=return_type,
            attributes=tuple(attributes),
        )

    def interface_decl(self, registered: RegisteredNode) -> InterfaceDecl:
        """Convert an interface node into an interface declaration.

        Args:
            registered (RegisteredNode): The interface node.

        Returns:
            InterfaceDecl: The interface declaration, named after its scoped name without dots.
        """
        self._used_types = set()

        interface_name = registered.scoped_name.replace(".", "")
        interface_schema = registered.schema.as_interface()
        runtime_methods = interface_schema.methods

        methods = tuple(
            self.method_decl(interface_name, method_node, runtime_methods[method_node.name])
            for method_node in registered.schema.node.interface.methods
        )

        imports_by_module: dict[str, set[str]] = {}
        for module_name, type_name in self._used_types:
            imports_by_module.setdefault(module_name, set()).add(type_name)

        imports = tuple(
            f"from {module_name} import {', '.join(sorted(names))}"
            for module_name, names in sorted(imports_by_module.items())
        )

        return InterfaceDecl(name=interface_name, methods=methods, imports=imports)

    def read_interfaces(self) -> list[InterfaceDecl]:
        """Read every interface defined in the module, in schema order."""
        interfaces = [
            self.interface_decl(registered)
            for registered in self.nodes.values()
            if registered.module_name == self._module_name and registered.kind == capnp_types.CapnpElementType.INTERFACE
        ]

        logger.debug("Found %d interface(s) in '%s'.", len(interfaces), self._module_name)
        return interfaces


def load_schemas(paths: list[str], import_paths: list[str] | None = None) -> capnp_types.ModuleRegistryType:
    """Load schema files into a module registry.

    Args:
        paths (list[str]): The schema files.
        import_paths (list[str] | None, optional): Additional import paths for resolving absolute
            imports. Defaults to None.

    Returns:
        ModuleRegistryType: The loaded modules by file node id.
    """
    parser = capnp.SchemaParser()
    module_registry: capnp_types.ModuleRegistryType = {}

    for path in sorted(paths):
        module = parser.load(path, imports=import_paths or [])
        module_registry[module.schema.node.id] = (path, module)

    return module_registry


def read_schema_file(path: str, import_paths: list[str] | None = None) -> list[InterfaceDecl]:
    """Read every interface of a single schema file.

    Args:
        path (str): The schema file.
        import_paths (list[str] | None, optional): Additional import paths. Defaults to None.

    Returns:
        list[InterfaceDecl]: The interfaces, in schema order.
    """
    module_registry = load_schemas([path], import_paths)
    ((_, module),) = module_registry.values()
    return SchemaReader(module, module_registry).read_interfaces()
