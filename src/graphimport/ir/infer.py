from __future__ import annotations

from collections.abc import Callable

import numpy as np

from graphimport.ir.graph import Graph, GraphValidator, Operation


class InferenceError(Exception):
    def __init__(self, message: str, code: str = "EINFER") -> None:
        super().__init__(message)
        self.code = code


ShapeInferFn = Callable[[Graph, Operation], None]

_REGISTRY: dict[str, ShapeInferFn] = {}


def register_shape_inference(op_type: str) -> Callable[[ShapeInferFn], ShapeInferFn]:
    def wrapper(fn: ShapeInferFn) -> ShapeInferFn:
        _REGISTRY[op_type] = fn
        return fn

    return wrapper


def _broadcast_shape(a: list[int], b: list[int]) -> list[int]:
    ra = list(reversed(a))
    rb = list(reversed(b))
    result: list[int] = []
    for i in range(max(len(ra), len(rb))):
        da = ra[i] if i < len(ra) else 1
        db = rb[i] if i < len(rb) else 1
        if da == db or da == 1 or db == 1:
            result.append(max(da, db))
        else:
            raise InferenceError(f"Broadcast mismatch: {a} vs {b}", code="EBROADCAST")
    return list(reversed(result))


def _promote_dtype(dtype_a: str, dtype_b: str) -> str:
    return str(np.result_type(dtype_a, dtype_b).name)


def _passthrough(graph: Graph, op: Operation) -> None:
    x = graph.variables[op.inputs[0]]
    out = graph.variables[op.outputs[0]]
    out.shape = list(x.shape) if x.shape is not None else None
    out.dtype = x.dtype


@register_shape_inference("Add")
def infer_add(graph: Graph, op: Operation) -> None:
    if len(op.inputs) != 2 or len(op.outputs) != 1:
        raise InferenceError("Add expects 2 inputs and 1 output", code="EADD_ARITY")
    a = graph.variables[op.inputs[0]]
    b = graph.variables[op.inputs[1]]
    out = graph.variables[op.outputs[0]]
    if a.shape is not None and b.shape is not None:
        out.shape = _broadcast_shape(a.shape, b.shape)
    out.dtype = _promote_dtype(a.dtype, b.dtype)


@register_shape_inference("Relu")
def infer_relu(graph: Graph, op: Operation) -> None:
    if len(op.inputs) != 1 or len(op.outputs) != 1:
        raise InferenceError("Relu expects 1 input and 1 output", code="ERELU_ARITY")
    _passthrough(graph, op)


@register_shape_inference("Identity")
def infer_identity(graph: Graph, op: Operation) -> None:
    if len(op.inputs) != 1 or len(op.outputs) != 1:
        raise InferenceError(
            "Identity expects 1 input and 1 output", code="EIDENTITY_ARITY"
        )
    _passthrough(graph, op)


@register_shape_inference("CumSum")
def infer_cumsum(graph: Graph, op: Operation) -> None:
    if len(op.inputs) != 1 or len(op.outputs) != 1:
        raise InferenceError("CumSum expects 1 input and 1 output", code="ECUMSUM_ARITY")
    x = graph.variables[op.inputs[0]]
    axis = op.attributes.get("axis")
    if not isinstance(axis, int):
        raise InferenceError("CumSum axis must be int", code="ECUMSUM_AXIS")
    if x.shape is not None and not -len(x.shape) <= axis < len(x.shape):
        raise InferenceError("CumSum axis out of range", code="ECUMSUM_AXIS")
    _passthrough(graph, op)


@register_shape_inference("Transpose")
def infer_transpose(graph: Graph, op: Operation) -> None:
    if len(op.inputs) != 1 or len(op.outputs) != 1:
        raise InferenceError(
            "Transpose expects 1 input and 1 output", code="ETRANSPOSE_ARITY"
        )
    x = graph.variables[op.inputs[0]]
    out = graph.variables[op.outputs[0]]
    out.dtype = x.dtype
    if x.shape is None:
        return
    rank = len(x.shape)
    perm = op.attributes.get("perm")
    if perm is None:
        perm = list(reversed(range(rank)))
    if (
        not isinstance(perm, list)
        or len(perm) != rank
        or any(not isinstance(p, int) or p < 0 or p >= rank for p in perm)
    ):
        raise InferenceError("Invalid Transpose perm", code="ETRANSPOSE_PERM")
    out.shape = [x.shape[i] for i in perm]


def infer_operation(graph: Graph, op: Operation) -> bool:
    """Infer one operation in place. Returns False when no rule is registered."""
    fn = _REGISTRY.get(op.op_type)
    if fn is None:
        return False
    fn(graph, op)
    return True


def infer_graph(graph: Graph) -> None:
    """
    Run shape/dtype inference over the graph in topological order.
    """
    for op in GraphValidator(graph).toposort():
        # Unknown op: leave shapes as-is
        infer_operation(graph, op)
