"""Read interface declarations from Python source files.

An interface is a class decorated with `@rpc_client`; its methods are the `def`s in the class body.
The file is parsed with `ast` and never imported.
"""

from __future__ import annotations

import ast
import logging
import os.path
from collections.abc import Iterator

from rpc_client_generator.errors import UnsupportedMethodShape
from rpc_client_generator.model import (
    AttributeArgument,
    AttributeDecl,
    Expression,
    IdentPattern,
    InterfaceDecl,
    ItemDecl,
    MethodDecl,
    NamedType,
    ParamDecl,
    ReferenceType,
    StarPattern,
    TupleType,
    TypeExpr,
    UnknownType,
)

logger = logging.getLogger(__name__)

INTERFACE_MARKER = "rpc_client"
REFERENCE_MARKER = "Ref"

# Imports of the generator's own markers are not needed by generated code.
MARKER_PACKAGE = "rpc_client_generator"

NON_INSTANCE_DECORATORS = frozenset({"staticmethod", "classmethod", "property"})


def _dotted_name(node: ast.expr) -> str | None:
    """Return `a.b.c` for a chain of attribute accesses on a name, None for anything else."""
    if isinstance(node, ast.Name):
        return node.id

    if isinstance(node, ast.Attribute):
        base = _dotted_name(node.value)
        if base is not None:
            return f"{base}.{node.attr}"

    return None


def _short_name(node: ast.expr) -> str | None:
    """Return the last component of a (possibly called) dotted name, e.g. `rpc` for `markers.rpc(...)`."""
    if isinstance(node, ast.Call):
        node = node.func

    name = _dotted_name(node)
    if name is None:
        return None
    return name.rsplit(".", 1)[-1]


def _is_interface_marker(node: ast.expr) -> bool:
    return _short_name(node) == INTERFACE_MARKER


def type_expr(node: ast.expr) -> TypeExpr:
    """Convert an annotation into a type expression.

    String annotations (forward references) are parsed as annotations themselves.

    Args:
        node (ast.expr): The annotation node.

    Returns:
        TypeExpr: The type expression; anything unrecognized becomes `UnknownType`.
    """
    if isinstance(node, ast.Constant):
        if node.value is None:
            return NamedType("None")

        if isinstance(node.value, str):
            try:
                parsed = ast.parse(node.value, mode="eval")
            except SyntaxError:
                return UnknownType(node.value)
            return type_expr(parsed.body)

        return UnknownType(ast.unparse(node))

    name = _dotted_name(node)
    if name is not None:
        return NamedType(name)

    if isinstance(node, ast.Subscript):
        base = _dotted_name(node.value)
        if base is None:
            return UnknownType(ast.unparse(node))

        if isinstance(node.slice, ast.Tuple):
            arguments = tuple(type_expr(e) for e in node.slice.elts)
        else:
            arguments = (type_expr(node.slice),)

        if base.rsplit(".", 1)[-1] == REFERENCE_MARKER:
            if len(arguments) != 1:
                return UnknownType(ast.unparse(node))
            return ReferenceType(arguments[0])

        return NamedType(base, arguments)

    if isinstance(node, ast.Tuple):
        return TupleType(tuple(type_expr(e) for e in node.elts))

    return UnknownType(ast.unparse(node))


def _attribute_value(node: ast.expr) -> object:
    if isinstance(node, ast.Constant):
        return node.value
    return Expression(ast.unparse(node))


def attribute_decl(node: ast.expr) -> AttributeDecl | None:
    """Convert a decorator into an attribute declaration, None if it is not a (called) dotted name."""
    name = _short_name(node)
    if name is None:
        return None

    if not isinstance(node, ast.Call):
        return AttributeDecl(name=name, bare=True, lineno=node.lineno)

    arguments = [AttributeArgument(key=None, value=_attribute_value(arg)) for arg in node.args]
    arguments.extend(AttributeArgument(key=kw.arg, value=_attribute_value(kw.value)) for kw in node.keywords)

    return AttributeDecl(name=name, arguments=tuple(arguments), lineno=node.lineno)


def _param_decl(arg: ast.arg) -> ParamDecl:
    annotation = type_expr(arg.annotation) if arg.annotation is not None else None
    return ParamDecl(pattern=IdentPattern(arg.arg), type=annotation, lineno=arg.lineno)


def _star_param_decl(arg: ast.arg, double: bool) -> ParamDecl:
    annotation = type_expr(arg.annotation) if arg.annotation is not None else None
    return ParamDecl(pattern=StarPattern(arg.arg, double=double), type=annotation, lineno=arg.lineno)


def method_decl(node: ast.FunctionDef | ast.AsyncFunctionDef) -> MethodDecl:
    """Convert a method definition into a method declaration.

    Args:
        node (ast.FunctionDef | ast.AsyncFunctionDef): The method definition.

    Raises:
        UnsupportedMethodShape: If the method is a static method, class method or property.

    Returns:
        MethodDecl: The method declaration. Its parameters are empty when there is no receiver.
    """
    attributes = []
    for decorator in node.decorator_list:
        attribute = attribute_decl(decorator)
        if attribute is None:
            continue

        if attribute.name in NON_INSTANCE_DECORATORS:
            raise UnsupportedMethodShape(
                f"'@{attribute.name}' methods are not supported",
                method=node.name,
                lineno=node.lineno,
            )

        attributes.append(attribute)

    args = node.args
    positional = [*args.posonlyargs, *args.args]

    params: list[ParamDecl] = []
    if positional:
        params.extend(_param_decl(arg) for arg in positional)
        if args.vararg is not None:
            params.append(_star_param_decl(args.vararg, double=False))
        params.extend(_param_decl(arg) for arg in args.kwonlyargs)
        if args.kwarg is not None:
            params.append(_star_param_decl(args.kwarg, double=True))

    type_params = tuple(getattr(tp, "name", ast.unparse(tp)) for tp in getattr(node, "type_params", []))

    return MethodDecl(
        name=node.name,
        params=tuple(params),
        return_type=type_expr(node.returns) if node.returns is not None else None,
        attributes=tuple(attributes),
        is_async=isinstance(node, ast.AsyncFunctionDef),
        type_params=type_params,
        lineno=node.lineno,
    )


def _type_names(type_expr_: TypeExpr | None) -> Iterator[str]:
    """Yield the root names of every named type inside a type expression."""
    if isinstance(type_expr_, NamedType):
        yield type_expr_.name.split(".", 1)[0]
        for argument in type_expr_.arguments:
            yield from _type_names(argument)
    elif isinstance(type_expr_, ReferenceType):
        yield from _type_names(type_expr_.target)
    elif isinstance(type_expr_, TupleType):
        for element in type_expr_.elements:
            yield from _type_names(element)


def _local_names(tree: ast.Module) -> set[str]:
    """Names defined at the top level of a module, other than by imports."""
    names: set[str] = set()

    for node in tree.body:
        if isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            names.add(node.name)
        elif isinstance(node, ast.Assign):
            names.update(t.id for t in node.targets if isinstance(t, ast.Name))
        elif isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
            names.add(node.target.id)
        elif isinstance(node, getattr(ast, "TypeAlias", ())):
            names.add(node.name.id)  # type: ignore[attr-defined]

    return names


def _carried_imports(tree: ast.Module) -> list[str]:
    """Top-level import statements, except future imports and those of the generator's own markers."""
    imports = []

    for node in tree.body:
        if isinstance(node, ast.ImportFrom):
            if node.module == "__future__":
                continue
            if node.level == 0 and node.module and node.module.split(".", 1)[0] == MARKER_PACKAGE:
                continue
            imports.append(ast.unparse(node))
        elif isinstance(node, ast.Import):
            if all(alias.name.split(".", 1)[0] == MARKER_PACKAGE for alias in node.names):
                continue
            imports.append(ast.unparse(node))

    return imports


def interface_decl(
    node: ast.ClassDef,
    imports: list[str],
    local_names: set[str],
    module_name: str | None,
) -> InterfaceDecl:
    """Convert an interface class into an interface declaration.

    Args:
        node (ast.ClassDef): The interface class.
        imports (list[str]): Import statements carried over from the interface's module.
        local_names (set[str]): Names defined in the interface's module.
        module_name (str | None): The module the interface lives in, used to import the local names its
            methods use. Local names are not imported when None.

    Returns:
        InterfaceDecl: The interface declaration.
    """
    methods = tuple(
        method_decl(item) for item in node.body if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef))
    )

    used: set[str] = set()
    for method in methods:
        for param in method.params[1:]:
            used.update(_type_names(param.type))
        used.update(_type_names(method.return_type))

    interface_imports = list(imports)
    local_used = sorted((used & local_names) - {node.name})
    if module_name and local_used:
        interface_imports.append(f"from {module_name} import {', '.join(local_used)}")

    return InterfaceDecl(name=node.name, methods=methods, imports=tuple(interface_imports), lineno=node.lineno)


def read_interfaces(
    source: str,
    filename: str = "<interface>",
    module_name: str | None = None,
) -> list[InterfaceDecl | ItemDecl]:
    """Read every item marked with `@rpc_client` from Python source.

    Args:
        source (str): The Python source.
        filename (str, optional): File name for syntax errors. Defaults to "<interface>".
        module_name (str | None, optional): Import path of the module, used to import the types it
            defines into generated code. Defaults to None.

    Raises:
        SyntaxError: If the source is not valid Python.
        UnsupportedMethodShape: If an interface method is a static method, class method or property.

    Returns:
        list[InterfaceDecl | ItemDecl]: Marked classes as interfaces, other marked items as `ItemDecl`, in
            source order.
    """
    tree = ast.parse(source, filename=filename)

    imports = _carried_imports(tree)
    local_names = _local_names(tree)

    items: list[InterfaceDecl | ItemDecl] = []
    for node in tree.body:
        if not isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            continue

        if not any(_is_interface_marker(d) for d in node.decorator_list):
            continue

        if isinstance(node, ast.ClassDef):
            items.append(interface_decl(node, imports, local_names, module_name))
        else:
            items.append(ItemDecl(name=node.name, kind="function", lineno=node.lineno))

    logger.debug("Found %d marked item(s) in '%s'.", len(items), filename)
    return items


def read_interface_file(path: str, module_name: str | None = None) -> list[InterfaceDecl | ItemDecl]:
    """Read every item marked with `@rpc_client` from a Python file.

    Args:
        path (str): Path to the file.
        module_name (str | None, optional): Import path of the module. Defaults to the file's stem.

    Returns:
        list[InterfaceDecl | ItemDecl]: The marked items.
    """
    with open(path, encoding="utf8") as f:
        source = f.read()

    if module_name is None:
        module_name = os.path.splitext(os.path.basename(path))[0]

    return read_interfaces(source, filename=path, module_name=module_name)
