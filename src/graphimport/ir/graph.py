from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import numpy as np


@dataclass
class Variable:
    name: str
    dtype: str
    shape: list[int] | None = None
    value: np.ndarray | None = None
    producer: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_constant(self) -> bool:
        return self.value is not None

    def as_constant_scalar(self) -> int | float | bool | None:
        """
        Constant-folding view: the Python scalar held by this variable, or None
        when it is symbolic or holds more than one element.
        """
        if self.value is None:
            return None
        arr = np.asarray(self.value)
        if arr.size != 1:
            return None
        return arr.reshape(-1)[0].item()


@dataclass
class Operation:
    op_type: str
    name: str
    inputs: list[str]
    outputs: list[str]
    attributes: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


class ValidationError(Exception):
    """Graph validation error with optional code and context."""

    def __init__(
        self, message: str, code: str = "EVALID", op_name: str | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.op_name = op_name


@dataclass
class Graph:
    operations: list[Operation] = field(default_factory=list)
    variables: dict[str, Variable] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    inputs: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)

    def add_variable(self, variable: Variable) -> Variable:
        if variable.name in self.variables:
            raise ValidationError(
                f"Variable '{variable.name}' already exists", code="EDUP_VARIABLE"
            )
        self.variables[variable.name] = variable
        return variable

    def get_variable(self, name: str) -> Variable | None:
        return self.variables.get(name)

    def has_variable(self, name: str) -> bool:
        return name in self.variables

    def placeholder(
        self, name: str, dtype: str = "float32", shape: list[int] | None = None
    ) -> Variable:
        var = self.add_variable(Variable(name=name, dtype=dtype, shape=shape))
        self.inputs.append(name)
        return var

    def constant(self, name: str, value: Any, dtype: str | None = None) -> Variable:
        arr = np.asarray(value, dtype=dtype)
        return self.add_variable(
            Variable(name=name, dtype=arr.dtype.name, shape=list(arr.shape), value=arr)
        )

    def unique_op_name(self, base: str) -> str:
        taken = {op.name for op in self.operations}
        if base not in taken:
            return base
        i = 1
        while f"{base}_{i}" in taken:
            i += 1
        return f"{base}_{i}"

    def add_operation(self, op: Operation) -> Operation:
        if any(existing.name == op.name for existing in self.operations):
            raise ValidationError(
                f"Operation '{op.name}' already exists",
                code="EDUP_OPERATION",
                op_name=op.name,
            )
        self.operations.append(op)
        return op

    def emit(
        self,
        op_type: str,
        inputs: list[str],
        outputs: list[str],
        attributes: dict[str, Any] | None = None,
        *,
        name: str | None = None,
        dtype: str = "float32",
        shape: list[int] | None = None,
    ) -> list[Variable]:
        """
        Append one operation and declare its output variables.
        Returns the newly created output variables in order.
        """
        for inp in inputs:
            if inp not in self.variables:
                raise ValidationError(
                    f"Operation input '{inp}' not found in variables",
                    code="EINPUT_MISSING",
                    op_name=name,
                )
        op_name = self.unique_op_name(name or op_type)
        created: list[Variable] = []
        for out in outputs:
            created.append(
                self.add_variable(
                    Variable(
                        name=out,
                        dtype=dtype,
                        shape=list(shape) if shape is not None else None,
                        producer=op_name,
                    )
                )
            )
        self.add_operation(
            Operation(
                op_type=op_type,
                name=op_name,
                inputs=list(inputs),
                outputs=list(outputs),
                attributes=dict(attributes or {}),
            )
        )
        return created

    def get_operation(self, name: str) -> Operation | None:
        for op in self.operations:
            if op.name == name:
                return op
        return None

    @contextmanager
    def transaction(self) -> Iterator[Graph]:
        """
        Roll back every variable and operation added inside the block if it raises.
        """
        n_ops = len(self.operations)
        known = set(self.variables)
        n_inputs = len(self.inputs)
        n_outputs = len(self.outputs)
        try:
            yield self
        except BaseException:
            del self.operations[n_ops:]
            for name in [n for n in self.variables if n not in known]:
                del self.variables[name]
            del self.inputs[n_inputs:]
            del self.outputs[n_outputs:]
            raise


class GraphValidator:
    """Validates basic graph invariants and provides graph utilities like toposort."""

    def __init__(self, graph: Graph) -> None:
        self.graph = graph

    def validate(self) -> None:
        self._validate_variables_typed()
        producer_map = self._build_producer_map()
        self._validate_op_io_exist()
        self._validate_inputs_outputs_exist()
        self._topological_order(producer_map)  # raises on cycles

    def _validate_variables_typed(self) -> None:
        for name, v in self.graph.variables.items():
            if not v.dtype or not isinstance(v.dtype, str):
                raise ValidationError(
                    f"Variable '{name}' missing dtype", code="EVAR_DTYPE"
                )
            if v.shape is None:
                continue
            for dim in v.shape:
                if not isinstance(dim, int) or dim < 0:
                    raise ValidationError(
                        f"Variable '{name}' has invalid shape {v.shape}",
                        code="EVAR_SHAPE",
                    )

    def _build_producer_map(self) -> dict[str, int]:
        """Map variable name -> producing operation index. Inputs and constants have none."""
        producer: dict[str, int] = {}
        for idx, op in enumerate(self.graph.operations):
            for out in op.outputs:
                if out in producer:
                    raise ValidationError(
                        f"Multiple producers for variable '{out}' at operation {idx} and {producer[out]}",
                        code="EDUP_PRODUCER",
                        op_name=op.name,
                    )
                producer[out] = idx
        return producer

    def _validate_op_io_exist(self) -> None:
        for op in self.graph.operations:
            for name in op.inputs:
                if name not in self.graph.variables:
                    raise ValidationError(
                        f"Operation '{op.name}' input '{name}' not found in variables",
                        code="EINPUT_MISSING",
                        op_name=op.name,
                    )
            for name in op.outputs:
                if name not in self.graph.variables:
                    raise ValidationError(
                        f"Operation '{op.name}' output '{name}' not found in variables",
                        code="EOUTPUT_MISSING",
                        op_name=op.name,
                    )

    def _validate_inputs_outputs_exist(self) -> None:
        for name in self.graph.inputs:
            if name not in self.graph.variables:
                raise ValidationError(
                    f"Graph input '{name}' missing variable", code="EGRAPH_INPUT"
                )
        for name in self.graph.outputs:
            if name not in self.graph.variables:
                raise ValidationError(
                    f"Graph output '{name}' missing variable", code="EGRAPH_OUTPUT"
                )

    def _topological_order(
        self, producer_map: dict[str, int] | None = None
    ) -> list[int]:
        """
        Return topological order of operation indices. Raise ValidationError on cycles.
        """
        if producer_map is None:
            producer_map = self._build_producer_map()
        ops = self.graph.operations

        indegree: list[int] = [0] * len(ops)
        adj: dict[int, set[int]] = {i: set() for i in range(len(ops))}

        # u -> v if v consumes a variable produced by u
        for v_idx, op in enumerate(ops):
            for inp in op.inputs:
                u_idx = producer_map.get(inp)
                if u_idx is not None and v_idx not in adj[u_idx]:
                    adj[u_idx].add(v_idx)
                    indegree[v_idx] += 1

        # Kahn's algorithm
        queue: list[int] = [i for i, d in enumerate(indegree) if d == 0]
        order: list[int] = []
        while queue:
            u = queue.pop(0)
            order.append(u)
            for v in sorted(adj[u]):
                indegree[v] -= 1
                if indegree[v] == 0:
                    queue.append(v)

        if len(order) != len(ops):
            raise ValidationError("Cycle detected in graph", code="ECYCLE")
        return order

    def toposort(self) -> list[Operation]:
        order = self._topological_order()
        return [self.graph.operations[i] for i in order]
