"""Tests for parameter and return type classification."""

from __future__ import annotations

import pytest

from rpc_client_generator.analyzer import analyze_parameter, analyze_return
from rpc_client_generator.errors import UnsupportedParameterShape, UnsupportedReturnShape
from rpc_client_generator.model import (
    IdentPattern,
    NamedType,
    ParamDecl,
    ParameterDescription,
    ReferenceType,
    StarPattern,
    TuplePattern,
    TupleType,
    UnknownType,
    WildcardPattern,
)


class TestAnalyzeParameter:
    """Test classification of non-receiver parameters."""

    def test_plain_named_type_is_by_value(self):
        param = ParamDecl(pattern=IdentPattern("count"), type=NamedType("int"))
        assert analyze_parameter(param) == ParameterDescription("count", "int", by_reference=False)

    def test_dotted_named_type_is_kept(self):
        param = ParamDecl(pattern=IdentPattern("origin"), type=NamedType("geometry.Point"))
        assert analyze_parameter(param).type_name == "geometry.Point"

    def test_reference_records_target_type(self):
        """The referenced type is recorded, not the reference wrapper."""
        param = ParamDecl(pattern=IdentPattern("a"), type=ReferenceType(NamedType("Foo")))
        assert analyze_parameter(param) == ParameterDescription("a", "Foo", by_reference=True)

    def test_destructuring_pattern_fails(self):
        param = ParamDecl(pattern=TuplePattern(("x", "y")), type=NamedType("Point"))

        with pytest.raises(UnsupportedParameterShape) as excinfo:
            analyze_parameter(param, method="move")

        assert excinfo.value.method == "move"
        assert excinfo.value.parameter == "(x, y)"

    @pytest.mark.parametrize(
        "pattern",
        [WildcardPattern(), StarPattern("args"), StarPattern("kwargs", double=True)],
    )
    def test_other_patterns_fail(self, pattern):
        with pytest.raises(UnsupportedParameterShape):
            analyze_parameter(ParamDecl(pattern=pattern, type=NamedType("int")))

    @pytest.mark.parametrize(
        "type_expr",
        [
            NamedType("list", (NamedType("int"),)),
            ReferenceType(ReferenceType(NamedType("Foo"))),
            ReferenceType(NamedType("list", (NamedType("int"),))),
            TupleType((NamedType("int"), NamedType("str"))),
            UnknownType("int | None"),
        ],
    )
    def test_unsupported_types_fail(self, type_expr):
        param = ParamDecl(pattern=IdentPattern("value"), type=type_expr, lineno=7)

        with pytest.raises(UnsupportedParameterShape) as excinfo:
            analyze_parameter(param, method="store")

        assert excinfo.value.parameter == "value"
        assert excinfo.value.lineno == 7
        assert str(type_expr) in excinfo.value.message

    def test_untyped_parameter_fails(self):
        with pytest.raises(UnsupportedParameterShape, match="untyped"):
            analyze_parameter(ParamDecl(pattern=IdentPattern("value"), type=None))


class TestAnalyzeReturn:
    """Test classification of return types."""

    def test_absent_return_type_is_unit(self):
        assert analyze_return(None) is None

    @pytest.mark.parametrize("name", ["None", "NoneType"])
    def test_none_is_unit(self, name):
        assert analyze_return(NamedType(name)) is None

    def test_plain_named_type(self):
        assert analyze_return(NamedType("int")) == "int"

    @pytest.mark.parametrize(
        "type_expr",
        [
            NamedType("list", (NamedType("int"),)),
            ReferenceType(NamedType("Foo")),
            TupleType(()),
            UnknownType("int | None"),
        ],
    )
    def test_unsupported_return_types_fail(self, type_expr):
        with pytest.raises(UnsupportedReturnShape) as excinfo:
            analyze_return(type_expr, method="fetch")

        assert excinfo.value.method == "fetch"
