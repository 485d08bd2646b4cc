"""Describe the type a transport must deserialize a reply into."""

from __future__ import annotations

from rpc_client_generator.model import MethodAnnotation
from rpc_client_generator.shapes import DirectResponse, ExtractedResponse, ResponseShape


def synthesize_response(return_type: str | None, annotation: MethodAnnotation) -> ResponseShape:
    """Choose between a direct reply and a one-field wrapper.

    A result field is honored even when the method returns no value: the wrapper then holds `None`.
    That construction is degenerate but allowed.

    Args:
        return_type (str | None): The return type name, None when the method returns no value.
        annotation (MethodAnnotation): The method's directives.

    Returns:
        ResponseShape: The response shape.
    """
    if annotation.result_field is None:
        return DirectResponse(type_name=return_type)

    return ExtractedResponse(field_name=annotation.result_field, field_type=return_type)
