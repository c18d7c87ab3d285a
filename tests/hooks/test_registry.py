from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from graphimport.errors import DuplicateRegistrationError, RegistryFrozenError
from graphimport.hooks import HookKey, HookRegistry, OperatorHook, TranslationResult, import_hook
from graphimport.hooks.cumsum import CumSum
from graphimport.importer import AttributeMap, InputResolver, SourceOperatorNode
from graphimport.ir import Graph


class NamedCumSum(OperatorHook):
    def translate(
        self,
        graph: Graph,
        attributes: AttributeMap,
        output_names: Sequence[str],
        source_node: SourceOperatorNode,
        input_resolver: InputResolver,
        dynamic_variables: Mapping[str, Any] | None = None,
    ) -> TranslationResult:
        self.check_arity(source_node, output_names)
        x = input_resolver(source_node.inputs[0])
        return {output_names[0]: graph.emit("Identity", [x.name], [output_names[0]])}


def test_hook_key_validation() -> None:
    with pytest.raises(ValueError):
        HookKey("", "onnx")
    with pytest.raises(ValueError):
        HookKey("CumSum", "")
    assert HookKey("CumSum", "onnx", "") == HookKey("CumSum", "onnx")
    assert HookKey("CumSum", "onnx").is_wildcard
    assert str(HookKey("CumSum", "onnx", "n1")) == "onnx:CumSum:n1"


def test_register_and_lookup_wildcard() -> None:
    reg = HookRegistry()
    hook = CumSum()
    reg.register(HookKey("CumSum", "onnx"), hook)
    assert reg.lookup("CumSum", "onnx") is hook
    assert reg.lookup("CumSum", "onnx", "any_node") is hook
    assert reg.lookup("CumSum", "tensorflow") is None
    assert reg.lookup("Relu", "onnx") is None


def test_duplicate_registration_fails() -> None:
    reg = HookRegistry()
    reg.register(HookKey("CumSum", "onnx"), CumSum())
    with pytest.raises(DuplicateRegistrationError) as exc:
        reg.register(HookKey("CumSum", "onnx"), CumSum())
    assert exc.value.code == "EDUP_HOOK"
    # a node-specific key is a different key
    reg.register(HookKey("CumSum", "onnx", "special"), CumSum())
    assert len(reg) == 2


def test_specific_node_name_beats_wildcard() -> None:
    reg = HookRegistry()
    wildcard = CumSum()
    specific = NamedCumSum()
    # registration order must not matter
    reg.register(HookKey("CumSum", "onnx", "special"), specific)
    reg.register(HookKey("CumSum", "onnx"), wildcard)
    assert reg.lookup("CumSum", "onnx", "special") is specific
    assert reg.lookup("CumSum", "onnx", "other") is wildcard
    assert reg.lookup("CumSum", "onnx") is wildcard


def test_specific_only_does_not_match_other_nodes() -> None:
    reg = HookRegistry()
    reg.register(HookKey("CumSum", "onnx", "special"), NamedCumSum())
    assert reg.lookup("CumSum", "onnx", "other") is None


def test_frozen_registry_rejects_writes() -> None:
    reg = HookRegistry()
    reg.register(HookKey("CumSum", "onnx"), CumSum())
    reg.freeze()
    assert reg.frozen
    with pytest.raises(RegistryFrozenError):
        reg.register(HookKey("Relu", "onnx"), NamedCumSum())
    assert reg.lookup("CumSum", "onnx") is not None


def test_concurrent_reads_after_freeze() -> None:
    reg = HookRegistry()
    hook = CumSum()
    reg.register(HookKey("CumSum", "onnx"), hook)
    reg.freeze()
    seen: list[object] = []

    def worker() -> None:
        for _ in range(200):
            seen.append(reg.lookup("CumSum", "onnx", "n"))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(seen) == 800 and all(h is hook for h in seen)


def test_import_hook_decorator_registers_every_combination() -> None:
    reg = HookRegistry()

    @import_hook(op_names=["CumSum", "CumSumV2"], framework="onnx", node_names=["a", "b"], registry=reg)
    class Both(NamedCumSum):
        pass

    assert len(reg) == 4
    assert isinstance(reg.lookup("CumSumV2", "onnx", "b"), Both)
    assert reg.lookup("CumSum", "onnx", "c") is None
    # one shared instance
    assert reg.lookup("CumSum", "onnx", "a") is reg.lookup("CumSumV2", "onnx", "b")


def test_default_hooks_registered_globally() -> None:
    from graphimport.hooks import global_registry

    assert HookKey("CumSum", "onnx") in global_registry
    assert HookKey("Constant", "onnx") in global_registry
    assert isinstance(global_registry.lookup("CumSum", "onnx", "whatever"), CumSum)
