"""Tests for located diagnostics."""

from __future__ import annotations

import pytest

from rpc_client_generator.errors import (
    InvalidAttachmentPoint,
    MalformedAnnotation,
    ReservedNameCollision,
    UnsupportedMethodShape,
    UnsupportedParameterShape,
    UnsupportedReturnShape,
    ValidationError,
)


@pytest.mark.parametrize(
    "error_type",
    [
        UnsupportedParameterShape,
        UnsupportedReturnShape,
        UnsupportedMethodShape,
        MalformedAnnotation,
        ReservedNameCollision,
        InvalidAttachmentPoint,
    ],
)
def test_taxonomy(error_type):
    assert issubclass(error_type, ValidationError)


def test_full_location():
    error = UnsupportedParameterShape("bad", interface="Pinger", method="ping", parameter="count", lineno=3)

    assert error.location == "Pinger.ping(count)"
    assert str(error) == "Pinger.ping(count) (line 3): bad"


def test_partial_location():
    assert str(InvalidAttachmentPoint("not an interface", interface="ping")) == "ping: not an interface"
    assert str(MalformedAnnotation("bad", lineno=2)) == "line 2: bad"
    assert str(ValidationError("bad")) == "bad"
