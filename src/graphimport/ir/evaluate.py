from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import numpy as np

from graphimport.ir.graph import Graph, GraphValidator


class EvaluationError(Exception):
    def __init__(self, message: str, code: str = "EEVAL") -> None:
        super().__init__(message)
        self.code = code


EvalFn = Callable[[list[np.ndarray], dict[str, Any]], list[np.ndarray]]

_EVALUATORS: dict[str, EvalFn] = {}


def register_evaluator(op_type: str) -> Callable[[EvalFn], EvalFn]:
    def wrapper(fn: EvalFn) -> EvalFn:
        _EVALUATORS[op_type] = fn
        return fn

    return wrapper


def cumsum(
    x: Any, axis: int, *, exclusive: bool = False, reverse: bool = False
) -> np.ndarray:
    """
    Reference cumulative sum along ``axis``.

    ``reverse`` walks the axis from its last index to its first. ``exclusive``
    then shifts the running totals one step toward higher indices, so index 0
    along the axis is zero.
    """
    arr = np.asarray(x)
    if reverse:
        arr = np.flip(arr, axis=axis)
    out = np.cumsum(arr, axis=axis, dtype=arr.dtype)
    if reverse:
        out = np.flip(out, axis=axis)
    if exclusive and out.shape[axis] > 0:
        out = np.roll(out, 1, axis=axis)
        head = [slice(None)] * out.ndim
        head[axis] = 0
        out[tuple(head)] = 0
    return out


@register_evaluator("CumSum")
def _eval_cumsum(inputs: list[np.ndarray], attrs: dict[str, Any]) -> list[np.ndarray]:
    x = inputs[0]
    axis = int(attrs["axis"])
    # Emitted axes are only range-checked at import when the rank was known
    if not -x.ndim <= axis < x.ndim:
        raise EvaluationError(
            f"CumSum axis {axis} is out of range for input of rank {x.ndim}",
            code="EAXIS",
        )
    return [
        cumsum(
            x,
            axis,
            exclusive=bool(attrs.get("exclusive", False)),
            reverse=bool(attrs.get("reverse", False)),
        )
    ]


@register_evaluator("Add")
def _eval_add(inputs: list[np.ndarray], attrs: dict[str, Any]) -> list[np.ndarray]:
    return [inputs[0] + inputs[1]]


@register_evaluator("Relu")
def _eval_relu(inputs: list[np.ndarray], attrs: dict[str, Any]) -> list[np.ndarray]:
    return [np.maximum(inputs[0], 0)]


@register_evaluator("Identity")
def _eval_identity(inputs: list[np.ndarray], attrs: dict[str, Any]) -> list[np.ndarray]:
    return [np.array(inputs[0], copy=True)]


@register_evaluator("Transpose")
def _eval_transpose(inputs: list[np.ndarray], attrs: dict[str, Any]) -> list[np.ndarray]:
    perm = attrs.get("perm")
    if perm is None:
        perm = list(reversed(range(inputs[0].ndim)))
    return [np.transpose(inputs[0], axes=perm)]


def evaluate(
    graph: Graph, feeds: Mapping[str, Any], outputs: list[str] | None = None
) -> dict[str, np.ndarray]:
    """
    Execute the graph with numpy and return the requested variables.

    Constants are read from the graph; every other source variable must be fed.
    When ``outputs`` is omitted the graph outputs are returned, or every
    operation output if the graph declares none.
    """
    env: dict[str, np.ndarray] = {}
    for name, var in graph.variables.items():
        if var.value is not None:
            env[name] = np.asarray(var.value)
    for name, val in feeds.items():
        if name not in graph.variables:
            raise EvaluationError(f"Feed '{name}' is not a graph variable", code="EFEED_UNKNOWN")
        env[name] = np.asarray(val)

    for op in GraphValidator(graph).toposort():
        fn = _EVALUATORS.get(op.op_type)
        if fn is None:
            raise EvaluationError(
                f"No evaluator for op type '{op.op_type}'", code="EUNSUPPORTED_OP"
            )
        missing = [n for n in op.inputs if n not in env]
        if missing:
            raise EvaluationError(
                f"Operation '{op.name}' is missing values for {missing}",
                code="EFEED_MISSING",
            )
        results = fn([env[n] for n in op.inputs], op.attributes)
        for name, val in zip(op.outputs, results):
            env[name] = val

    wanted = outputs or graph.outputs or [o for op in graph.operations for o in op.outputs]
    result: dict[str, np.ndarray] = {}
    for name in wanted:
        if name not in env:
            raise EvaluationError(f"No value computed for '{name}'", code="EFEED_MISSING")
        result[name] = env[name]
    return result
