"""Tests for the generation pipeline, from declarations to artifacts."""

from __future__ import annotations

import pytest
from conftest import RECEIVER, method, param

from rpc_client_generator.errors import (
    InvalidAttachmentPoint,
    MalformedAnnotation,
    ReservedNameCollision,
    UnsupportedMethodShape,
    UnsupportedParameterShape,
    UnsupportedReturnShape,
    ValidationError,
)
from rpc_client_generator.generator import analyze_interface, analyze_method, generate_client, generate_module
from rpc_client_generator.model import (
    InterfaceDecl,
    ItemDecl,
    MethodAnnotation,
    MethodDecl,
    NamedType,
    ParamDecl,
    ParameterDescription,
    TuplePattern,
)


class TestAnalyzeMethod:
    """Test validation of single methods."""

    def test_receiver_is_skipped(self):
        description = analyze_method(method("ping", param("count", "int"), returns="int"))

        assert description.parameters == (ParameterDescription("count", "int"),)
        assert description.return_type == "int"
        assert description.wire_name == "ping"

    def test_annotation_is_resolved(self):
        description = analyze_method(method("ping", returns="int", name="ping2", result_field="value"))

        assert description.annotation == MethodAnnotation(name="ping2", result_field="value")
        assert description.wire_name == "ping2"

    def test_coroutine_fails(self):
        decl = MethodDecl(name="ping", params=(RECEIVER,), is_async=True, lineno=4)

        with pytest.raises(UnsupportedMethodShape, match="coroutine") as excinfo:
            analyze_method(decl)

        assert excinfo.value.lineno == 4

    def test_generic_method_fails(self):
        decl = MethodDecl(name="ping", params=(RECEIVER,), type_params=("T",))

        with pytest.raises(UnsupportedMethodShape, match="type parameters: T"):
            analyze_method(decl)

    def test_missing_receiver_fails(self):
        with pytest.raises(UnsupportedMethodShape, match="receiver"):
            analyze_method(MethodDecl(name="ping", params=()))


class TestAnalyzeInterface:
    """Test validation of whole interfaces."""

    def test_not_an_interface(self):
        with pytest.raises(InvalidAttachmentPoint) as excinfo:
            analyze_interface(ItemDecl(name="ping", kind="function", lineno=12))

        assert excinfo.value.interface == "ping"
        assert "function" in str(excinfo.value)

    def test_reserved_name(self):
        interface = InterfaceDecl(name="Pinger", methods=(method("ping"), method("get_rpc_client")))

        with pytest.raises(ReservedNameCollision) as excinfo:
            analyze_interface(interface)

        assert excinfo.value.location == "Pinger.get_rpc_client"

    def test_reserved_name_checked_before_methods(self):
        """The collision is reported even when an earlier method is invalid too."""
        broken = method("move", ParamDecl(pattern=TuplePattern(("x", "y")), type=NamedType("Point")))
        interface = InterfaceDecl(name="Pinger", methods=(broken, method("get_rpc_client")))

        with pytest.raises(ReservedNameCollision):
            analyze_interface(interface)

    def test_errors_name_the_interface(self):
        broken = method("move", ParamDecl(pattern=TuplePattern(("x", "y")), type=NamedType("Point"), lineno=9))
        interface = InterfaceDecl(name="Mover", methods=(broken,))

        with pytest.raises(UnsupportedParameterShape) as excinfo:
            analyze_interface(interface)

        assert excinfo.value.interface == "Mover"
        assert str(excinfo.value).startswith("Mover.move((x, y)) (line 9): ")

    def test_imports_are_kept(self, pinger):
        assert analyze_interface(pinger).imports == ("from decimal import Decimal",)


class TestGenerateClient:
    """Test end-to-end generation of one client."""

    def test_zero_methods(self):
        artifact = generate_client(InterfaceDecl(name="Empty"))

        assert artifact.interface_name == "Empty"
        assert artifact.client_name == "EmptyClient"
        assert artifact.records == ()
        assert "def get_rpc_client(self) -> _RpcT: ..." in artifact.trait

    def test_shapes(self, pinger):
        artifact = generate_client(pinger)

        assert [r.splitlines()[1] for r in artifact.records] == [
            "class _Pinger_ping_InputPayload:",
            "class _Pinger_ping_OutputPayload:",
            "class _Pinger_echo_InputPayload:",
            "class _Pinger_digest_InputPayload:",
        ]

    def test_deterministic(self, pinger):
        assert generate_client(pinger) == generate_client(pinger)
        assert generate_client(pinger).source == generate_client(pinger).source

    @pytest.mark.parametrize(
        "broken, error",
        [
            (method("get_rpc_client"), ReservedNameCollision),
            (method("move", ParamDecl(pattern=TuplePattern(("x", "y")), type=NamedType("Point"))), UnsupportedParameterShape),
            (MethodDecl(name="fetch", params=(RECEIVER,), return_type=NamedType("list", (NamedType("int"),))), UnsupportedReturnShape),
            (method("ping", timeout="5"), MalformedAnnotation),
        ],
    )
    def test_no_partial_artifact(self, pinger, broken, error):
        """A single invalid method fails the whole interface."""
        interface = InterfaceDecl(name=pinger.name, methods=(*pinger.methods, broken), imports=pinger.imports)

        with pytest.raises(error):
            generate_client(interface)

    def test_standalone_source_runs(self, pinger, load_generated, fake_rpc):
        artifact = generate_client(pinger)
        module = load_generated(artifact.source)

        rpc = fake_rpc(lambda method, payload, response_type: " ".join([payload.text] * payload.times))
        assert module.PingerClient(rpc).echo("hi", 3) == "hi hi hi"
        assert rpc.calls[0][0] == "echo"


class TestGenerateModule:
    """Test generation of modules with several clients."""

    def test_all_or_nothing(self, pinger):
        interfaces = [pinger, InterfaceDecl(name="Broken", methods=(method("get_rpc_client"),))]

        with pytest.raises(ValidationError):
            generate_module(interfaces, "pinger.py")

    def test_deterministic(self, pinger):
        items = [pinger, InterfaceDecl(name="Empty")]
        assert generate_module(items, "pinger.py") == generate_module(items, "pinger.py")

    def test_extracting_unit(self, load_generated, fake_rpc):
        """A result field without a return value extracts `None`."""
        interface = InterfaceDecl(name="Notifier", methods=(method("notify", result_field="ack"),))

        module = load_generated(generate_module([interface], "notifier.py"))
        rpc = fake_rpc(lambda method, payload, response_type: response_type(ack=None))

        assert module.NotifierClient(rpc).notify() is None
        assert rpc.calls == [("notify", None, module._Notifier_notify_OutputPayload)]
