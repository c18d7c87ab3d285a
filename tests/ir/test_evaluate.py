from __future__ import annotations

import numpy as np
import pytest

from graphimport.ir import EvaluationError, Graph, cumsum, evaluate


@pytest.mark.parametrize(
    ("exclusive", "reverse", "expected"),
    [
        (False, False, [1, 3, 6, 10]),
        (True, False, [0, 1, 3, 6]),
        (False, True, [10, 9, 7, 4]),
        (True, True, [0, 10, 9, 7]),
    ],
)
def test_cumsum_kernel_flags(exclusive: bool, reverse: bool, expected: list[int]) -> None:
    out = cumsum(np.array([1, 2, 3, 4]), 0, exclusive=exclusive, reverse=reverse)
    np.testing.assert_array_equal(out, expected)


def test_cumsum_kernel_2d_axis1_keeps_dtype() -> None:
    x = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.int32)
    out = cumsum(x, 1, exclusive=True)
    np.testing.assert_array_equal(out, [[0, 1, 3], [0, 4, 9]])
    assert out.dtype == np.int32


@pytest.mark.parametrize("exclusive", [False, True])
@pytest.mark.parametrize("reverse", [False, True])
def test_cumsum_kernel_empty_axis(exclusive: bool, reverse: bool) -> None:
    out = cumsum(np.zeros((2, 0), dtype=np.float32), 1, exclusive=exclusive, reverse=reverse)
    assert out.shape == (2, 0) and out.dtype == np.float32


def test_evaluate_exclusive_cumsum_on_empty_input() -> None:
    g = Graph()
    g.placeholder("x", shape=[0])
    g.emit("CumSum", ["x"], ["y"], {"axis": 0, "exclusive": True, "reverse": False}, shape=[0])
    out = evaluate(g, {"x": np.zeros(0, dtype=np.float32)})
    assert out["y"].shape == (0,)


@pytest.mark.parametrize("axis", [5, -2])
def test_evaluate_cumsum_axis_out_of_range(axis: int) -> None:
    g = Graph()
    g.placeholder("x")
    g.emit("CumSum", ["x"], ["y"], {"axis": axis, "exclusive": False, "reverse": False})
    with pytest.raises(EvaluationError) as exc:
        evaluate(g, {"x": np.ones(3, dtype=np.float32)})
    assert exc.value.code == "EAXIS"


def test_evaluate_chain_with_constants() -> None:
    g = Graph()
    g.placeholder("x", shape=[3])
    g.constant("b", np.array([-5.0, 0.0, 5.0], dtype=np.float32))
    g.emit("Add", ["x", "b"], ["s"])
    g.emit("Relu", ["s"], ["r"])
    g.emit("CumSum", ["r"], ["y"], {"axis": 0, "exclusive": False, "reverse": False})
    g.outputs = ["y"]

    out = evaluate(g, {"x": np.array([1.0, 1.0, 1.0], dtype=np.float32)})
    np.testing.assert_allclose(out["y"], [0.0, 1.0, 7.0])


def test_evaluate_requested_outputs() -> None:
    g = Graph()
    g.placeholder("x", shape=[2, 2])
    g.emit("Transpose", ["x"], ["t"])
    g.emit("Identity", ["t"], ["y"])
    out = evaluate(g, {"x": [[1, 2], [3, 4]]}, outputs=["t"])
    assert list(out) == ["t"]
    np.testing.assert_array_equal(out["t"], [[1, 3], [2, 4]])


def test_evaluate_missing_feed_raises() -> None:
    g = Graph()
    g.placeholder("x")
    g.emit("Relu", ["x"], ["y"])
    with pytest.raises(EvaluationError) as exc:
        evaluate(g, {})
    assert exc.value.code == "EFEED_MISSING"


def test_evaluate_unknown_feed_raises() -> None:
    g = Graph()
    g.placeholder("x")
    with pytest.raises(EvaluationError) as exc:
        evaluate(g, {"nope": 1.0})
    assert exc.value.code == "EFEED_UNKNOWN"


def test_evaluate_unsupported_op_raises() -> None:
    g = Graph()
    g.placeholder("x")
    g.emit("Mystery", ["x"], ["y"])
    with pytest.raises(EvaluationError) as exc:
        evaluate(g, {"x": 1.0})
    assert exc.value.code == "EUNSUPPORTED_OP"
