"""Target graph IR: variables, operations, validation, inference and evaluation."""

from .evaluate import EvaluationError, cumsum, evaluate
from .graph import Graph, GraphValidator, Operation, ValidationError, Variable
from .infer import InferenceError, infer_graph, infer_operation
from .serialize import dumps, graph_from_dict, graph_to_dict, loads
from .utils import build_consumer_map, build_producer_map, extract_subgraph, summary

__all__ = [
    "Graph",
    "Operation",
    "Variable",
    "GraphValidator",
    "ValidationError",
    "build_producer_map",
    "build_consumer_map",
    "extract_subgraph",
    "summary",
    "InferenceError",
    "infer_graph",
    "infer_operation",
    "EvaluationError",
    "cumsum",
    "evaluate",
    "graph_to_dict",
    "graph_from_dict",
    "dumps",
    "loads",
]
