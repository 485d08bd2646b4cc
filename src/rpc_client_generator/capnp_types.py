"""Types definitions that are common in capnproto schemas."""

from __future__ import annotations

from types import ModuleType

# Primitive capnproto types and the Python types their values are passed as. All of them are passed by value.
CAPNP_TYPE_TO_PYTHON = {
    "void": "None",
    "bool": "bool",
    "int8": "int",
    "int16": "int",
    "int32": "int",
    "int64": "int",
    "uint8": "int",
    "uint16": "int",
    "uint32": "int",
    "uint64": "int",
    "float32": "float",
    "float64": "float",
    "text": "str",
    "data": "bytes",
}


class CapnpFieldType:
    """Types of capnproto fields."""

    GROUP = "group"


class CapnpElementType:
    """Types of capnproto elements."""

    ENUM = "enum"
    STRUCT = "struct"
    LIST = "list"
    INTERFACE = "interface"
    ANNOTATION = "annotation"


class CapnpAnnotation:
    """Annotations the client generator understands, by declared name."""

    # `annotation rpcName(method) :Text;` overrides the wire name of a method.
    RPC_NAME = "rpcName"


# Suffix of the synthetic struct capnproto creates for a named result list.
RESULTS_SUFFIX = "$Results"

ModuleRegistryType = dict[int, tuple[str, ModuleType]]
