"""Payload and response shapes, and the artifact the assembler emits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from rpc_client_generator.model import ParameterDescription


@dataclass(frozen=True)
class EmptyPayload:
    """No arguments: the unit value `None` is sent and no record class is generated."""


@dataclass(frozen=True)
class RecordPayload:
    """A record bundling all arguments of a call.

    Attributes:
        fields: The method's parameters in declaration order.
        needs_borrow: Whether any field is by-reference. All borrowed fields share one borrow scope:
            the duration of the call that built the record.
    """

    fields: tuple[ParameterDescription, ...]
    needs_borrow: bool = False

    @property
    def borrowed_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.by_reference)


PayloadShape = Union[EmptyPayload, RecordPayload]


@dataclass(frozen=True)
class DirectResponse:
    """The reply deserializes straight into the return type (`None` for no value)."""

    type_name: str | None


@dataclass(frozen=True)
class ExtractedResponse:
    """The reply deserializes into a one-field wrapper whose field holds the result."""

    field_name: str
    field_type: str | None


ResponseShape = Union[DirectResponse, ExtractedResponse]


@dataclass(frozen=True)
class GeneratedArtifact:
    """The generated client for one interface. Pure output; it holds no runtime state.

    Attributes:
        interface_name: Name of the generated trait class.
        client_name: Name of the generated carrier class.
        imports: Import lines the sources below depend on, in emission order.
        declarations: Module-level statements the sources below depend on, e.g. type variables.
        records: Payload and response record class sources, in method declaration order.
        trait: Source of the trait class.
        carrier: Source of the carrier class.
    """

    interface_name: str
    client_name: str
    imports: tuple[str, ...]
    declarations: tuple[str, ...]
    records: tuple[str, ...]
    trait: str
    carrier: str

    @property
    def blocks(self) -> tuple[str, ...]:
        """All top-level definitions, in emission order."""
        return (*self.records, self.trait, self.carrier)

    @property
    def source(self) -> str:
        """A standalone module containing only this artifact."""
        header = "\n".join(self.imports)
        if self.declarations:
            header = header + "\n\n" + "\n".join(self.declarations)
        return "\n\n\n".join([header, *self.blocks]) + "\n"
