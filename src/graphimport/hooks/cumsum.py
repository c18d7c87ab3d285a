from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from graphimport.errors import NonConstantAxisError, UnresolvedInputError
from graphimport.hooks.base import OperatorHook, TranslationResult, literal_scalar
from graphimport.hooks.registry import import_hook
from graphimport.importer.attributes import AttributeMap
from graphimport.importer.resolver import InputResolver, resolve_input
from graphimport.importer.source import SourceOperatorNode
from graphimport.ir.graph import Graph


@import_hook(op_names=["CumSum"], framework="onnx")
class CumSum(OperatorHook):
    """
    ONNX CumSum: https://github.com/onnx/onnx/blob/main/docs/Operators.md#CumSum

    Inputs are ``x`` and a scalar ``axis`` tensor; ``exclusive`` and ``reverse``
    are 0/1 integer attributes. The axis is folded into an attribute of the
    emitted op, so it has to be known at translation time.
    """

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

        x = resolve_input(source_node, 0, input_resolver)
        axis = self._read_axis(source_node, input_resolver, dynamic_variables)
        if x.shape is not None:
            rank = len(x.shape)
            if not -rank <= axis < rank:
                raise NonConstantAxisError(
                    f"Axis {axis} is out of range for input of rank {rank}",
                    node=source_node.identity,
                )
            axis %= rank

        out = graph.emit(
            "CumSum",
            [x.name],
            [output_names[0]],
            {
                "axis": axis,
                "exclusive": attrs.get_bool("exclusive", False),
                "reverse": attrs.get_bool("reverse", False),
            },
            name=source_node.name,
            dtype=x.dtype,
            shape=x.shape,
        )
        return {output_names[0]: out}

    def _read_axis(
        self,
        source_node: SourceOperatorNode,
        input_resolver: InputResolver,
        dynamic_variables: Mapping[str, Any] | None,
    ) -> int:
        try:
            axis_var = resolve_input(source_node, 1, input_resolver)
        except UnresolvedInputError:
            # Literal inputs may not have been lifted into the graph yet
            axis_var = None
        value = axis_var.as_constant_scalar() if axis_var is not None else None
        name = source_node.inputs[1]
        if value is None and dynamic_variables and name in dynamic_variables:
            value = literal_scalar(dynamic_variables[name])
        if value is None:
            raise NonConstantAxisError(
                f"Axis input '{name}' is not a constant scalar at import time",
                node=source_node.identity,
            )
        if (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or not float(value).is_integer()
        ):
            raise NonConstantAxisError(
                f"Axis input '{name}' must be an integer, got {value!r}",
                node=source_node.identity,
            )
        return int(value)
