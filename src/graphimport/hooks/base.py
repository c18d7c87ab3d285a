from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
import onnx
from onnx import numpy_helper

from graphimport.errors import ArityMismatchError
from graphimport.importer.attributes import AttributeMap
from graphimport.importer.resolver import InputResolver
from graphimport.importer.source import SourceOperatorNode
from graphimport.ir.graph import Graph, Variable

TranslationResult = dict[str, list[Variable]]


def literal_scalar(raw: Any) -> int | float | bool | None:
    """
    Read a raw source-framework literal (TensorProto, array or Python value) as a
    scalar. Returns None when it holds anything other than exactly one element.
    """
    if isinstance(raw, Variable):
        return raw.as_constant_scalar()
    if isinstance(raw, onnx.TensorProto):
        raw = numpy_helper.to_array(raw)
    try:
        arr = np.asarray(raw)
    except (TypeError, ValueError):
        return None
    if arr.dtype == object or arr.size != 1:
        return None
    return arr.reshape(-1)[0].item()


class OperatorHook(ABC):
    """
    Per-operator translation unit that replaces the generic import path.

    Subclasses build the equivalent target operations in ``graph`` and return
    the variables they bound, keyed by output name.
    """

    # Number of output names the hook binds; None accepts any non-zero count
    expected_outputs: int | None = 1

    @abstractmethod
    def translate(
        self,
        graph: Graph,
        attributes: AttributeMap,
        output_names: Sequence[str],
        source_node: SourceOperatorNode,
        input_resolver: InputResolver,
        dynamic_variables: Mapping[str, Any] | None = None,
    ) -> TranslationResult:
        raise NotImplementedError

    def check_arity(
        self, source_node: SourceOperatorNode, output_names: Sequence[str]
    ) -> None:
        count = len(output_names)
        if count == 0 or (
            self.expected_outputs is not None and count != self.expected_outputs
        ):
            expected = (
                "at least 1" if self.expected_outputs is None else str(self.expected_outputs)
            )
            raise ArityMismatchError(
                f"{source_node.op_type} expects {expected} output name(s), got {count}",
                node=source_node.identity,
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
