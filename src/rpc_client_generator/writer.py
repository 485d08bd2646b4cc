"""Assemble generated client code from analyzed interfaces.

For each interface the writer emits:
- a payload record class per method with arguments,
- a response record class per method with a result field,
- a trait class with one method per interface method and the abstract transport accessor,
- a carrier class holding one transport and implementing the accessor.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

from rpc_client_generator import helper
from rpc_client_generator.model import RESERVED_ACCESSOR_NAME, InterfaceDescription, MethodDescription
from rpc_client_generator.payload import synthesize_payload
from rpc_client_generator.response import synthesize_response
from rpc_client_generator.shapes import ExtractedResponse, GeneratedArtifact, RecordPayload

logger = logging.getLogger(__name__)

RUNTIME_MODULE = "rpc_client_generator.runtime"

TRANSPORT_TYPE_VAR = "_RpcT"
TRANSPORT_FIELD = "client"
RESPONSE_VARIABLE = "response"

INPUT_PAYLOAD_SUFFIX = "InputPayload"
OUTPUT_PAYLOAD_SUFFIX = "OutputPayload"

UNIT = "None"

WIRE_NAME_METADATA = "wire_name"


def record_name(interface_name: str, method_name: str, suffix: str) -> str:
    """Name of a generated record class, e.g. `_Pinger_ping_InputPayload`.

    Leading underscores of the interface name are dropped: a name starting with `__` would be mangled
    inside the trait class body. The result is not unique, `Writer` resolves collisions.
    """
    return f"_{interface_name.lstrip('_') or 'Interface'}_{method_name}_{suffix}"


def client_name(interface_name: str) -> str:
    """Name of the generated carrier class."""
    return f"{interface_name}Client"


class ImportSet:
    """Imports of a generated module, kept in a deterministic order.

    `from` imports are grouped by module: the future import first, then the standard library, then the
    runtime support module, then the interface's own import lines in the order they were declared.
    """

    STDLIB_MODULES = ("abc", "dataclasses", "typing")

    def __init__(self) -> None:
        self._from_imports: dict[str, set[str]] = {}
        self._lines: list[str] = []

    def add_from(self, module: str, name: str):
        self._from_imports.setdefault(module, set()).add(name)

    def add_line(self, line: str):
        if line not in self._lines:
            self._lines.append(line)

    def update(self, other: ImportSet):
        for module, names in other._from_imports.items():
            for name in names:
                self.add_from(module, name)
        for line in other._lines:
            self.add_line(line)

    def _from_line(self, module: str) -> str:
        return f"from {module} import {', '.join(sorted(self._from_imports[module]))}"

    @property
    def lines(self) -> list[str]:
        out = ["from __future__ import annotations", ""]

        stdlib = [self._from_line(m) for m in self.STDLIB_MODULES if m in self._from_imports]
        if stdlib:
            out.extend(stdlib)
            out.append("")

        if RUNTIME_MODULE in self._from_imports:
            out.append(self._from_line(RUNTIME_MODULE))

        out.extend(self._lines)

        if out[-1] == "":
            out.pop()

        return out


class Writer:
    """A class that accumulates generated clients and writes them as one module."""

    def __init__(self, source_name: str = ""):
        """Initialize the writer.

        Args:
            source_name (str, optional): Name of the interface source, used in the module docstring.
                Defaults to "".
        """
        self._imports = ImportSet()
        self._artifacts: list[GeneratedArtifact] = []

        # Top-level names defined in the module so far.
        self._names: set[str] = {TRANSPORT_TYPE_VAR}

        if source_name:
            self.docstring = f'"""This is an automatically generated client for `{source_name}`."""'
        else:
            self.docstring = '"""This is an automatically generated client."""'

    @property
    def artifacts(self) -> list[GeneratedArtifact]:
        return list(self._artifacts)

    @property
    def declarations(self) -> list[str]:
        """Module-level statements shared by all generated clients."""
        return [f'{TRANSPORT_TYPE_VAR} = TypeVar("{TRANSPORT_TYPE_VAR}", bound=Rpc)']

    def reserve_name(self, name: str) -> str:
        """Claim a top-level name, appending a counter if the name is already taken.

        Args:
            name (str): The preferred name.

        Returns:
            str: The claimed name, e.g. `_A_b_c_InputPayload_2` for a second `_A_b_c_InputPayload`.
        """
        candidate = name
        counter = 2
        while candidate in self._names:
            candidate = f"{name}_{counter}"
            counter += 1

        self._names.add(candidate)
        return candidate

    @staticmethod
    def _add_base_imports(imports: ImportSet):
        imports.add_from("abc", "ABC")
        imports.add_from("abc", "abstractmethod")
        imports.add_from("typing", "Generic")
        imports.add_from("typing", "TypeVar")
        imports.add_from(RUNTIME_MODULE, "Rpc")

    def gen_record(
        self,
        imports: ImportSet,
        name: str,
        fields: list[str],
        docstring: str | None = None,
    ) -> str:
        """Generate a frozen dataclass.

        Args:
            imports (ImportSet): The imports of the interface being generated.
            name (str): The class name.
            fields (list[str]): The annotated fields, in order.
            docstring (str | None, optional): A one-line class docstring. Defaults to None.

        Returns:
            str: The class source.
        """
        imports.add_from("dataclasses", "dataclass")

        body: list[str] = []
        if docstring:
            body.extend([helper.new_docstring(docstring), ""])
        body.extend(fields)

        lines = [
            helper.new_decorator("dataclass", ["frozen=True", "slots=True"]),
            helper.new_class_declaration(name),
            *helper.indent(body),
        ]
        return "\n".join(lines)

    def gen_payload_record(
        self,
        imports: ImportSet,
        name: str,
        payload: RecordPayload,
    ) -> str:
        """Generate the record that carries a method's arguments.

        By-reference fields are annotated `Ref[T]`; they all share the borrow scope of the call that
        builds the record. A field serialized under another name carries it as `wire_name` metadata.
        """
        fields = []
        for parameter in payload.fields:
            type_name = parameter.type_name
            if parameter.by_reference:
                type_name = helper.new_group("Ref", [type_name])

            field = helper.new_typed_parameter(parameter.name, type_name)
            if parameter.wire_name is not None:
                imports.add_from("dataclasses", "field")
                metadata = f"{{{json.dumps(WIRE_NAME_METADATA)}: {json.dumps(parameter.wire_name)}}}"
                field = f"{field} = field(metadata={metadata})"
            fields.append(field)

        docstring = None
        if payload.needs_borrow:
            imports.add_from(RUNTIME_MODULE, "Ref")
            borrowed = ", ".join(f"`{f}`" for f in payload.borrowed_fields)
            docstring = f"Borrows {borrowed} for the duration of one call."

        return self.gen_record(imports, name, fields, docstring)

    def gen_response_record(self, imports: ImportSet, name: str, response: ExtractedResponse) -> str:
        """Generate the one-field wrapper a reply is deserialized into."""
        field_type = response.field_type or UNIT
        return self.gen_record(imports, name, [helper.new_typed_parameter(response.field_name, field_type)])

    @staticmethod
    def gen_payload_value(payload_type: str, payload: RecordPayload) -> str:
        """Generate the record literal built from a call's arguments, e.g. `_Pinger_ping_InputPayload(count=count)`."""
        arguments = [f"{f.name}={f.name}" for f in payload.fields]
        return f"{payload_type}({helper.join_parameters(arguments)})"

    def gen_method(
        self,
        method: MethodDescription,
        payload_value: str,
        reply_type: str,
        result_field: str | None = None,
    ) -> list[str]:
        """Generate a trait method that performs the remote call.

        Args:
            method (MethodDescription): The analyzed method.
            payload_value (str): The expression sent as payload, `None` or a record literal.
            reply_type (str): The type the reply is deserialized into.
            result_field (str | None, optional): The reply field returned instead of the reply itself.
                Defaults to None.

        Returns:
            list[str]: The method lines, unindented.
        """
        parameters = ["self"]
        for parameter in method.parameters:
            type_name = parameter.type_name
            if parameter.by_reference:
                type_name = helper.new_group("Ref", [type_name])
            parameters.append(helper.new_typed_parameter(parameter.name, type_name))

        result = RESPONSE_VARIABLE
        if result_field is not None:
            result = f"{RESPONSE_VARIABLE}.{result_field}"

        call = f"self.{RESERVED_ACCESSOR_NAME}().call({json.dumps(method.wire_name)}, {payload_value}, {reply_type})"
        body = [
            f"{RESPONSE_VARIABLE}: {reply_type} = {call}",
            f"return {result}",
        ]

        return helper.new_function(method.name, parameters, method.return_type or UNIT, body)

    def gen_trait(self, name: str, method_lines: list[list[str]]) -> str:
        """Generate the trait class: all method bodies plus the abstract transport accessor."""
        body: list[str] = []
        for lines in method_lines:
            body.extend(lines)
            body.append("")

        body.append(helper.new_decorator("abstractmethod"))
        body.extend(helper.new_function(RESERVED_ACCESSOR_NAME, ["self"], TRANSPORT_TYPE_VAR))

        declaration = helper.new_class_declaration(name, ["ABC", helper.new_group("Generic", [TRANSPORT_TYPE_VAR])])
        return "\n".join([declaration, *helper.indent(body)])

    def gen_carrier(self, interface_name: str, name: str) -> str:
        """Generate the carrier class that holds exactly one transport."""
        init = helper.new_function(
            "__init__",
            ["self", helper.new_typed_parameter(TRANSPORT_FIELD, TRANSPORT_TYPE_VAR)],
            body=[f"self.{TRANSPORT_FIELD} = {TRANSPORT_FIELD}"],
        )
        accessor = helper.new_function(
            RESERVED_ACCESSOR_NAME,
            ["self"],
            TRANSPORT_TYPE_VAR,
            body=[f"return self.{TRANSPORT_FIELD}"],
        )

        declaration = helper.new_class_declaration(name, [helper.new_group(interface_name, [TRANSPORT_TYPE_VAR])])
        return "\n".join([declaration, *helper.indent([*init, "", *accessor])])

    def gen_interface(self, interface: InterfaceDescription) -> GeneratedArtifact:
        """Generate the client of one interface and add it to this module.

        Args:
            interface (InterfaceDescription): The analyzed interface.

        Returns:
            GeneratedArtifact: The generated client.
        """
        imports = ImportSet()
        self._add_base_imports(imports)
        for line in interface.imports:
            imports.add_line(line)

        self._names.add(interface.name)
        carrier_name = client_name(interface.name)
        self._names.add(carrier_name)

        records: list[str] = []
        method_lines: list[list[str]] = []

        for method in interface.methods:
            payload = synthesize_payload(method.parameters)
            response = synthesize_response(method.return_type, method.annotation)

            payload_value = UNIT
            if isinstance(payload, RecordPayload):
                payload_type = self.reserve_name(record_name(interface.name, method.name, INPUT_PAYLOAD_SUFFIX))
                records.append(self.gen_payload_record(imports, payload_type, payload))
                payload_value = self.gen_payload_value(payload_type, payload)

            if isinstance(response, ExtractedResponse):
                reply_type = self.reserve_name(record_name(interface.name, method.name, OUTPUT_PAYLOAD_SUFFIX))
                records.append(self.gen_response_record(imports, reply_type, response))
                result_field = response.field_name
            else:
                reply_type = response.type_name or UNIT
                result_field = None

            method_lines.append(self.gen_method(method, payload_value, reply_type, result_field))
            logger.debug("Generated method '%s.%s' calling '%s'.", interface.name, method.name, method.wire_name)

        artifact = GeneratedArtifact(
            interface_name=interface.name,
            client_name=carrier_name,
            imports=tuple(imports.lines),
            declarations=tuple(self.declarations),
            records=tuple(records),
            trait=self.gen_trait(interface.name, method_lines),
            carrier=self.gen_carrier(interface.name, carrier_name),
        )

        self._imports.update(imports)
        self._artifacts.append(artifact)
        return artifact

    def gen_interfaces(self, interfaces: Iterable[InterfaceDescription]) -> list[GeneratedArtifact]:
        interfaces = list(interfaces)

        # Records never take the name of a class generated later in the module.
        for interface in interfaces:
            self._names.update((interface.name, client_name(interface.name)))

        return [self.gen_interface(interface) for interface in interfaces]

    def dumps(self) -> str:
        """Generates string output for the client module.

        Returns:
            str: The output string.
        """
        out = [self.docstring, ""]

        if not self._artifacts:
            return "\n".join(out)

        out.extend(self._imports.lines)
        out.append("")
        out.extend(self.declarations)

        for artifact in self._artifacts:
            for block in artifact.blocks:
                out.extend(["", "", block])

        out.append("")
        return "\n".join(out)


def assemble(interface: InterfaceDescription) -> GeneratedArtifact:
    """Generate the client of a single interface.

    Args:
        interface (InterfaceDescription): The analyzed interface.

    Returns:
        GeneratedArtifact: The generated client.
    """
    return Writer(interface.name).gen_interface(interface)
