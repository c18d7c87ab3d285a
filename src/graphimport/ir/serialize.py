from __future__ import annotations

import json
from typing import Any

import numpy as np

from graphimport.ir.graph import Graph, Operation, Variable

FORMAT_VERSION = 1


def _encode_array(arr: np.ndarray) -> dict[str, Any]:
    if arr.dtype.kind == "c":
        # JSON has no complex numbers; store the two parts side by side
        return {
            "dtype": arr.dtype.name,
            "shape": list(arr.shape),
            "data": arr.real.tolist(),
            "imag": arr.imag.tolist(),
        }
    # String dtypes only round-trip through their array-protocol spelling
    dtype = arr.dtype.name if arr.dtype.kind in "biuf" else arr.dtype.str
    return {"dtype": dtype, "shape": list(arr.shape), "data": arr.tolist()}


def _decode_array(doc: dict[str, Any]) -> np.ndarray:
    if "imag" in doc:
        arr = np.asarray(doc["data"]) + 1j * np.asarray(doc["imag"])
        return arr.astype(doc["dtype"]).reshape(doc["shape"])
    return np.asarray(doc["data"], dtype=doc["dtype"]).reshape(doc["shape"])


def _encode_attr(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return {"__ndarray__": _encode_array(value)}
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    if isinstance(value, (list, tuple)):
        return [_encode_attr(v) for v in value]
    return value


def _decode_attr(value: Any) -> Any:
    if isinstance(value, dict) and "__ndarray__" in value:
        return _decode_array(value["__ndarray__"])
    if isinstance(value, list):
        return [_decode_attr(v) for v in value]
    return value


def graph_to_dict(graph: Graph) -> dict[str, Any]:
    variables = []
    for var in graph.variables.values():
        variables.append(
            {
                "name": var.name,
                "dtype": var.dtype,
                "shape": var.shape,
                "value": _encode_array(np.asarray(var.value)) if var.value is not None else None,
                "producer": var.producer,
            }
        )
    operations = [
        {
            "op_type": op.op_type,
            "name": op.name,
            "inputs": list(op.inputs),
            "outputs": list(op.outputs),
            "attributes": {k: _encode_attr(v) for k, v in op.attributes.items()},
        }
        for op in graph.operations
    ]
    return {
        "format_version": FORMAT_VERSION,
        "inputs": list(graph.inputs),
        "outputs": list(graph.outputs),
        "variables": variables,
        "operations": operations,
    }


def graph_from_dict(doc: dict[str, Any]) -> Graph:
    version = doc.get("format_version")
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported graph document version: {version!r}")
    g = Graph()
    for v in doc["variables"]:
        g.add_variable(
            Variable(
                name=v["name"],
                dtype=v["dtype"],
                shape=list(v["shape"]) if v["shape"] is not None else None,
                value=_decode_array(v["value"]) if v["value"] is not None else None,
                producer=v.get("producer"),
            )
        )
    for o in doc["operations"]:
        g.add_operation(
            Operation(
                op_type=o["op_type"],
                name=o["name"],
                inputs=list(o["inputs"]),
                outputs=list(o["outputs"]),
                attributes={k: _decode_attr(v) for k, v in o["attributes"].items()},
            )
        )
    g.inputs = list(doc["inputs"])
    g.outputs = list(doc["outputs"])
    return g


def dumps(graph: Graph, *, indent: int | None = None) -> str:
    return json.dumps(graph_to_dict(graph), indent=indent)


def loads(text: str) -> Graph:
    return graph_from_dict(json.loads(text))
