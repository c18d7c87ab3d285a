from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from graphimport.errors import AttributeTypeError
from graphimport.hooks.base import OperatorHook, TranslationResult
from graphimport.hooks.registry import import_hook
from graphimport.importer.attributes import AttributeMap
from graphimport.importer.resolver import InputResolver
from graphimport.importer.source import SourceOperatorNode
from graphimport.ir.graph import Graph

_VALUE_ATTRS = (
    "value",
    "value_float",
    "value_floats",
    "value_int",
    "value_ints",
    "value_string",
    "value_strings",
)


@import_hook(op_names=["Constant"], framework="onnx")
class Constant(OperatorHook):
    """Materialize an ONNX Constant node as a constant variable."""

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
        attrs = attributes if isinstance(attributes, AttributeMap) else AttributeMap(attributes)

        present = [k for k in _VALUE_ATTRS if k in attrs]
        if len(present) != 1:
            raise AttributeTypeError(
                f"Constant needs exactly one of {', '.join(_VALUE_ATTRS)}; got {present}",
                node=source_node.identity,
            )
        key = present[0]
        if key == "value":
            value = np.asarray(attrs.get_tensor(key))
        elif key == "value_float":
            value = np.asarray(attrs.get_float(key), dtype=np.float32)
        elif key == "value_floats":
            value = np.asarray(attrs.get_floats(key), dtype=np.float32)
        elif key == "value_int":
            value = np.asarray(attrs.get_int(key), dtype=np.int64)
        elif key == "value_ints":
            value = np.asarray(attrs.get_ints(key), dtype=np.int64)
        elif key == "value_string":
            value = np.asarray(attrs.get_string(key))
        else:
            value = np.asarray(attrs.get_strings(key))

        var = graph.constant(output_names[0], value)
        return {output_names[0]: [var]}
