from __future__ import annotations

from typing import Any

import onnx
from onnx import numpy_helper

from graphimport.config import ImportConfig
from graphimport.hooks import HookRegistry
from graphimport.importer.attributes import AttributeMap
from graphimport.importer.driver import ImportDriver, ImportReport
from graphimport.importer.source import SourceOperatorNode
from graphimport.ir import Graph, GraphValidator
from graphimport.parsers.base import Parser
from graphimport.utils import get_logger

logger = get_logger(__name__)

_DTYPE_MAP = {
    onnx.TensorProto.FLOAT: "float32",
    onnx.TensorProto.UINT8: "uint8",
    onnx.TensorProto.INT8: "int8",
    onnx.TensorProto.UINT16: "uint16",
    onnx.TensorProto.INT16: "int16",
    onnx.TensorProto.INT32: "int32",
    onnx.TensorProto.INT64: "int64",
    onnx.TensorProto.BOOL: "bool",
    onnx.TensorProto.FLOAT16: "float16",
    onnx.TensorProto.DOUBLE: "float64",
    onnx.TensorProto.UINT32: "uint32",
    onnx.TensorProto.UINT64: "uint64",
    onnx.TensorProto.BFLOAT16: "bfloat16",
}


def _dtype_from_value_info(vi: onnx.ValueInfoProto) -> str | None:
    return _DTYPE_MAP.get(vi.type.tensor_type.elem_type)


def _shape_from_value_info(vi: onnx.ValueInfoProto) -> list[int] | None:
    """Static shape, or None when the rank or any dimension is unknown."""
    tensor_type = vi.type.tensor_type
    if not tensor_type.HasField("shape"):
        return None
    out: list[int] = []
    for d in tensor_type.shape.dim:
        if not d.HasField("dim_value"):
            return None
        out.append(int(d.dim_value))
    return out


def parse_attributes(node: onnx.NodeProto) -> AttributeMap:
    attrs: dict[str, Any] = {}
    for a in node.attribute:
        if a.type == onnx.AttributeProto.INT:
            attrs[a.name] = int(a.i)
        elif a.type == onnx.AttributeProto.FLOAT:
            attrs[a.name] = float(a.f)
        elif a.type == onnx.AttributeProto.STRING:
            attrs[a.name] = a.s.decode("utf-8", errors="ignore")
        elif a.type == onnx.AttributeProto.INTS:
            attrs[a.name] = [int(x) for x in a.ints]
        elif a.type == onnx.AttributeProto.FLOATS:
            attrs[a.name] = [float(x) for x in a.floats]
        elif a.type == onnx.AttributeProto.STRINGS:
            attrs[a.name] = [s.decode("utf-8", errors="ignore") for s in a.strings]
        elif a.type == onnx.AttributeProto.TENSOR:
            attrs[a.name] = numpy_helper.to_array(a.t)
        else:
            # Graphs, sparse tensors and type protos are not translated
            logger.debug(
                "Ignoring attribute '%s' of type %s on %s",
                a.name,
                onnx.AttributeProto.AttributeType.Name(a.type),
                node.op_type,
            )
    return AttributeMap(attrs)


def source_nodes(model: onnx.ModelProto) -> list[SourceOperatorNode]:
    nodes: list[SourceOperatorNode] = []
    for idx, n in enumerate(model.graph.node):
        nodes.append(
            SourceOperatorNode(
                op_type=n.op_type,
                # Unnamed nodes get a stable positional name
                name=n.name or f"{n.op_type}_{idx}",
                inputs=tuple(n.input),
                outputs=tuple(n.output),
                attributes=parse_attributes(n),
                domain=n.domain,
            )
        )
    return nodes


class OnnxParser(Parser):
    """Import an ONNX model into a target Graph through the hook registry."""

    def __init__(self, registry: HookRegistry | None = None) -> None:
        self.registry = registry

    def parse(self, model_or_path: Any, *, config: ImportConfig | None = None) -> Graph:
        return self.parse_with_report(model_or_path, config=config).graph

    def parse_with_report(
        self, model_or_path: Any, *, config: ImportConfig | None = None
    ) -> ImportReport:
        config = config or ImportConfig()
        model = self._load_model(model_or_path)
        g = Graph(metadata={"producer": model.producer_name, "graph_name": model.graph.name})

        # Initializers -> constant variables, also offered raw to hooks
        dynamic_variables: dict[str, onnx.TensorProto] = {}
        for init in model.graph.initializer:
            g.constant(init.name, numpy_helper.to_array(init))
            dynamic_variables[init.name] = init

        # Inputs -> placeholders (skip ones that are initializers)
        for inp in model.graph.input:
            if inp.name in g.variables:
                continue
            g.placeholder(
                inp.name,
                dtype=_dtype_from_value_info(inp) or "float32",
                shape=_shape_from_value_info(inp),
            )

        report = ImportDriver(self.registry, config).run(
            g, source_nodes(model), dynamic_variables
        )

        # Declared shapes fill in whatever inference left unknown
        for vi in list(model.graph.value_info) + list(model.graph.output):
            var = g.get_variable(vi.name)
            if var is None:
                continue
            if var.shape is None:
                var.shape = _shape_from_value_info(vi)
            dtype = _dtype_from_value_info(vi)
            if dtype and var.producer is not None and not var.is_constant:
                var.dtype = dtype

        g.outputs = [out.name for out in model.graph.output if out.name in g.variables]
        if config.validate and report.ok:
            GraphValidator(g).validate()
        return report

    def _load_model(self, model_or_path: Any) -> onnx.ModelProto:
        if isinstance(model_or_path, onnx.ModelProto):
            return model_or_path
        if isinstance(model_or_path, (bytes, bytearray)):
            return onnx.load_model_from_string(bytes(model_or_path))
        if isinstance(model_or_path, str):
            return onnx.load(model_or_path)
        raise TypeError("Unsupported model type for ONNX parser")
