"""Describe the argument payload of a method."""

from __future__ import annotations

from collections.abc import Sequence

from rpc_client_generator.model import ParameterDescription
from rpc_client_generator.shapes import EmptyPayload, PayloadShape, RecordPayload


def synthesize_payload(parameters: Sequence[ParameterDescription]) -> PayloadShape:
    """Bundle a method's non-receiver parameters into a payload shape.

    No parameters yield `EmptyPayload`, so that no vacuous record class is generated. Otherwise the record
    keeps the declaration order, and borrows when any of its fields is by-reference. A single borrow scope
    covers all borrowed fields: they all come from the argument list of the same call.

    Args:
        parameters (Sequence[ParameterDescription]): The classified parameters, receiver excluded.

    Returns:
        PayloadShape: The payload shape.
    """
    if not parameters:
        return EmptyPayload()

    return RecordPayload(
        fields=tuple(parameters),
        needs_borrow=any(p.by_reference for p in parameters),
    )
