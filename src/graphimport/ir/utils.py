from __future__ import annotations

from collections import Counter

import numpy as np

from graphimport.ir.graph import Graph, Operation, Variable
from graphimport.ir.graph import GraphValidator as _GraphValidator


def build_producer_map(graph: Graph) -> dict[str, int]:
    """
    Map variable name -> producing operation index. Inputs and constants have no producer.
    Raises ValidationError on duplicate producers.
    """
    return _GraphValidator(graph)._build_producer_map()


def build_consumer_map(graph: Graph) -> dict[str, list[int]]:
    """
    Map variable name -> list of consuming operation indices.
    """
    consumers: dict[str, list[int]] = {}
    for idx, op in enumerate(graph.operations):
        for inp in op.inputs:
            consumers.setdefault(inp, []).append(idx)
    return consumers


def extract_subgraph(graph: Graph, op_names: set[str]) -> Graph:
    """
    Create a new Graph that contains only the named operations.
    - Operations keep their topological order.
    - Variables include any referenced by the included operations; constants keep their values.
    - Graph inputs: non-constant variables consumed but not produced within the set.
    - Graph outputs: variables produced within the set that are consumed outside it,
      are original graph outputs, or are terminal.
    """
    if not op_names:
        return Graph()

    ordered = [op for op in _GraphValidator(graph).toposort() if op.name in op_names]
    consumer_map = build_consumer_map(graph)
    index_of = {op.name: idx for idx, op in enumerate(graph.operations)}
    included = {index_of[op.name] for op in ordered}

    new_graph = Graph()
    used: list[str] = []
    produced: list[str] = []
    for op in ordered:
        used.extend(n for n in op.inputs if n not in used)
        produced.extend(n for n in op.outputs if n not in produced)

    for name in used + [n for n in produced if n not in used]:
        v = graph.get_variable(name)
        if v is None:
            continue
        new_graph.add_variable(
            Variable(
                name=v.name,
                dtype=v.dtype,
                shape=list(v.shape) if v.shape is not None else None,
                value=np.array(v.value, copy=True) if v.value is not None else None,
                producer=v.producer if v.name in produced else None,
                metadata=dict(v.metadata),
            )
        )

    for op in ordered:
        new_graph.add_operation(
            Operation(
                op_type=op.op_type,
                name=op.name,
                inputs=list(op.inputs),
                outputs=list(op.outputs),
                attributes=dict(op.attributes),
                metadata=dict(op.metadata),
            )
        )

    new_graph.inputs = [
        n
        for n in used
        if n not in produced
        and n in new_graph.variables
        and not new_graph.variables[n].is_constant
    ]
    outputs: list[str] = []
    for name in produced:
        consumers = consumer_map.get(name, [])
        any_outside = any(c not in included for c in consumers)
        if any_outside or name in graph.outputs or not consumers:
            outputs.append(name)
    new_graph.outputs = outputs
    return new_graph


def summary(graph: Graph) -> str:
    """Human-readable summary: inputs, outputs, constants and op distribution."""
    lines = [f"Inputs ({len(graph.inputs)}):"]
    for name in graph.inputs:
        v = graph.variables[name]
        lines.append(f"  {name}: {v.shape} {v.dtype}")
    lines.append(f"Outputs ({len(graph.outputs)}):")
    for name in graph.outputs:
        v = graph.variables.get(name)
        if v is None:
            lines.append(f"  {name}: <missing>")
        else:
            lines.append(f"  {name}: {v.shape} {v.dtype}")
    constants = [v for v in graph.variables.values() if v.is_constant]
    total = sum(int(np.asarray(v.value).size) for v in constants)
    lines.append(f"Constants: {len(constants)} ({total:,} elements)")
    counts = Counter(op.op_type for op in graph.operations)
    lines.append(f"Operations: {len(graph.operations)}")
    for op_type, count in counts.most_common():
        lines.append(f"  {op_type}: {count}")
    return "\n".join(lines)
