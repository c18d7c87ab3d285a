from __future__ import annotations

import numpy as np
import onnx
import pytest
from onnx import TensorProto, helper, numpy_helper

from graphimport.config import ImportConfig
from graphimport.errors import NodeTranslationError
from graphimport.ir import GraphValidator, dumps, evaluate, loads
from graphimport.parsers.onnx import OnnxParser, parse_attributes, source_nodes


def _cumsum_model(
    axis_source: str = "initializer", exclusive: int = 0, reverse: int = 0
) -> onnx.ModelProto:
    x = helper.make_tensor_value_info("x", TensorProto.FLOAT, [2, 3])
    y = helper.make_tensor_value_info("y", TensorProto.FLOAT, [2, 3])
    inputs = [x]
    initializer = []
    nodes = []
    if axis_source == "initializer":
        initializer.append(helper.make_tensor("axis", TensorProto.INT64, [], [1]))
    elif axis_source == "constant":
        nodes.append(
            helper.make_node(
                "Constant",
                [],
                ["axis"],
                value=helper.make_tensor("axis_value", TensorProto.INT64, [], [1]),
            )
        )
    else:
        inputs.append(helper.make_tensor_value_info("axis", TensorProto.INT64, []))
    nodes.append(
        helper.make_node(
            "CumSum", ["x", "axis"], ["y"], name="cs", exclusive=exclusive, reverse=reverse
        )
    )
    graph = helper.make_graph(nodes, "cumsum", inputs, [y], initializer=initializer)
    return helper.make_model(graph, producer_name="graphimport-test")


@pytest.mark.parametrize("axis_source", ["initializer", "constant"])
@pytest.mark.parametrize(
    ("exclusive", "reverse", "expected"),
    [
        (0, 0, [[1, 3, 6], [4, 9, 15]]),
        (1, 0, [[0, 1, 3], [0, 4, 9]]),
        (0, 1, [[6, 5, 3], [15, 11, 6]]),
        (1, 1, [[0, 6, 5], [0, 15, 11]]),
    ],
)
def test_cumsum_import_end_to_end(
    axis_source: str, exclusive: int, reverse: int, expected: list[list[int]]
) -> None:
    report = OnnxParser().parse_with_report(
        _cumsum_model(axis_source, exclusive, reverse)
    )
    g = report.graph

    assert report.ok
    assert "CumSum:cs" in report.hooked
    (op,) = g.operations
    assert op.op_type == "CumSum" and op.inputs == ["x"]
    assert op.attributes == {"axis": 1, "exclusive": bool(exclusive), "reverse": bool(reverse)}
    assert g.variables["y"].shape == [2, 3]
    assert g.inputs == ["x"] and g.outputs == ["y"]

    x = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.float32)
    np.testing.assert_allclose(evaluate(g, {"x": x})["y"], expected)


def test_axis_from_graph_input_fails_in_strict_mode() -> None:
    with pytest.raises(NodeTranslationError) as exc:
        OnnxParser().parse(_cumsum_model("input"))
    assert exc.value.code == "EAXIS_CONST"
    assert exc.value.node == "CumSum:cs"


def test_lenient_mode_reports_instead_of_raising() -> None:
    report = OnnxParser().parse_with_report(
        _cumsum_model("input"), config=ImportConfig(strict=False)
    )
    assert not report.ok
    assert [f.code for f in report.failures] == ["EAXIS_CONST"]
    assert report.graph.operations == []
    assert report.graph.outputs == []


def test_generic_ops_with_initializer_constants() -> None:
    a = helper.make_tensor("a", TensorProto.FLOAT, [2, 2], [1.0, -2.0, 3.0, -4.0])
    b = helper.make_tensor("b", TensorProto.FLOAT, [2, 2], [5.0, 6.0, 7.0, 8.0])
    c_info = helper.make_tensor_value_info("c", TensorProto.FLOAT, [2, 2])
    graph = helper.make_graph(
        [
            helper.make_node("Add", ["a", "b"], ["s"]),
            helper.make_node("Relu", ["s"], ["c"]),
        ],
        "add_relu",
        [],
        [c_info],
        initializer=[a, b],
    )
    report = OnnxParser().parse_with_report(helper.make_model(graph))
    g = report.graph

    assert report.hooked == []
    assert report.generic == ["Add:Add_0", "Relu:Relu_1"]
    np.testing.assert_array_equal(g.variables["a"].value, [[1.0, -2.0], [3.0, -4.0]])
    assert g.variables["s"].shape == [2, 2]
    np.testing.assert_allclose(evaluate(g, {})["c"], [[6.0, 4.0], [10.0, 4.0]])


def test_declared_value_info_fills_unknown_shapes() -> None:
    x = helper.make_tensor_value_info("x", TensorProto.FLOAT, [2, 3])
    y = helper.make_tensor_value_info("y", TensorProto.FLOAT, [3, 2])
    shape = helper.make_tensor("shape", TensorProto.INT64, [2], [3, 2])
    graph = helper.make_graph(
        [helper.make_node("Reshape", ["x", "shape"], ["y"], name="reshape")],
        "reshape",
        [x],
        [y],
        initializer=[shape],
    )
    g = OnnxParser().parse(helper.make_model(graph))
    assert g.operations[0].inputs == ["x", "shape"]
    assert g.variables["y"].shape == [3, 2]
    GraphValidator(g).validate()


def test_symbolic_dims_stay_unknown() -> None:
    x = helper.make_tensor_value_info("x", TensorProto.FLOAT, ["batch", 4])
    y = helper.make_tensor_value_info("y", TensorProto.FLOAT, ["batch", 4])
    graph = helper.make_graph([helper.make_node("Relu", ["x"], ["y"])], "relu", [x], [y])
    g = OnnxParser().parse(helper.make_model(graph))
    assert g.variables["x"].shape is None
    assert g.variables["y"].shape is None


def test_parse_from_bytes_and_path(tmp_path) -> None:
    model = _cumsum_model()
    path = tmp_path / "cumsum.onnx"
    onnx.save(model, str(path))

    from_bytes = OnnxParser().parse(model.SerializeToString())
    from_path = OnnxParser().parse(str(path))
    assert from_bytes.operations == from_path.operations
    assert from_bytes.metadata["producer"] == "graphimport-test"


def test_unsupported_model_type() -> None:
    with pytest.raises(TypeError):
        OnnxParser().parse(42)


def test_parse_attributes_kinds() -> None:
    node = helper.make_node(
        "Custom",
        ["x"],
        ["y"],
        alpha=0.5,
        count=3,
        mode="edge",
        pads=[1, 2],
        scales=[0.5, 2.0],
        tags=["a", "b"],
        weight=numpy_helper.from_array(np.array([1, 2], dtype=np.int32)),
    )
    attrs = parse_attributes(node)
    assert attrs.get_float("alpha") == 0.5
    assert attrs.get_int("count") == 3
    assert attrs.get_string("mode") == "edge"
    assert attrs.get_ints("pads") == [1, 2]
    assert attrs.get_floats("scales") == [0.5, 2.0]
    assert attrs.get_strings("tags") == ["a", "b"]
    np.testing.assert_array_equal(attrs.get_tensor("weight"), [1, 2])


def test_source_nodes_name_unnamed_nodes_by_position() -> None:
    graph = helper.make_graph(
        [
            helper.make_node("Relu", ["x"], ["a"], name="first"),
            helper.make_node("Relu", ["a"], ["b"]),
        ],
        "names",
        [helper.make_tensor_value_info("x", TensorProto.FLOAT, [1])],
        [helper.make_tensor_value_info("b", TensorProto.FLOAT, [1])],
    )
    names = [n.name for n in source_nodes(helper.make_model(graph))]
    assert names == ["first", "Relu_1"]


def test_complex_initializer_survives_json_export() -> None:
    value = np.array([1 + 1j, 2 - 3j], dtype=np.complex64)
    graph = helper.make_graph(
        [helper.make_node("Identity", ["c"], ["y"], name="copy")],
        "complex",
        [],
        [helper.make_tensor_value_info("y", TensorProto.COMPLEX64, [2])],
        initializer=[numpy_helper.from_array(value, name="c")],
    )
    g = OnnxParser().parse(helper.make_model(graph))
    assert g.variables["y"].dtype == "complex64"

    restored = loads(dumps(g))
    np.testing.assert_array_equal(restored.variables["c"].value, value)
    np.testing.assert_array_equal(evaluate(restored, {})["y"], value)
