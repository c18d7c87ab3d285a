from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from graphimport.errors import IndexOutOfRangeError, UnresolvedInputError
from graphimport.importer.attributes import AttributeValue
from graphimport.importer.source import SourceOperatorNode
from graphimport.ir.graph import Graph, Variable

InputResolver = Callable[[str], Variable]


def get_attribute(attributes: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Lookup with default. Never fails; tagged values are unwrapped."""
    value = attributes.get(key)
    if value is None:
        return default
    if isinstance(value, AttributeValue):
        return value.unwrap()
    return value


class VariableResolver:
    """Resolves input names to variables already materialized in a graph."""

    def __init__(self, graph: Graph) -> None:
        self.graph = graph

    def __call__(self, name: str) -> Variable:
        var = self.graph.get_variable(name) if name else None
        if var is None:
            raise UnresolvedInputError(
                f"Input '{name}' has not been materialized in the graph"
            )
        return var


def resolve_input(
    source_node: SourceOperatorNode, index: int, input_resolver: InputResolver
) -> Variable:
    if index < 0 or index >= len(source_node.inputs):
        raise IndexOutOfRangeError(
            f"Input index {index} out of range for {len(source_node.inputs)} declared inputs",
            node=source_node.identity,
        )
    name = source_node.inputs[index]
    try:
        return input_resolver(name)
    except UnresolvedInputError as e:
        raise UnresolvedInputError(
            f"Input {index} ('{name}') has not been materialized in the graph",
            node=source_node.identity,
        ) from e
