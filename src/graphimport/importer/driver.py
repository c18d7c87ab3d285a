from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from graphimport.config import ImportConfig
from graphimport.errors import (
    MissingOutputError,
    NodeTranslationError,
    UnexpectedOutputError,
)
from graphimport.hooks import HookRegistry, TranslationResult, global_registry
from graphimport.importer.resolver import InputResolver, VariableResolver
from graphimport.importer.source import SourceOperatorNode
from graphimport.ir.graph import Graph, ValidationError
from graphimport.ir.infer import infer_operation
from graphimport.utils import get_logger

logger = get_logger(__name__)


@dataclass
class NodeFailure:
    node: str
    op_type: str
    node_name: str
    code: str
    message: str


@dataclass
class ImportReport:
    graph: Graph
    hooked: list[str] = field(default_factory=list)
    generic: list[str] = field(default_factory=list)
    failures: list[NodeFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def order_nodes(nodes: Sequence[SourceOperatorNode]) -> list[SourceOperatorNode]:
    """
    Order source nodes so every input is produced before it is consumed.
    Names with no producing node (graph inputs, initializers) impose no edge.
    Raises ValidationError on duplicate producers or cycles.
    """
    producer: dict[str, int] = {}
    for idx, node in enumerate(nodes):
        for out in node.outputs:
            if not out:
                continue
            if out in producer:
                raise ValidationError(
                    f"Multiple producers for '{out}': {nodes[producer[out]].identity} and {node.identity}",
                    code="EDUP_PRODUCER",
                    op_name=node.name,
                )
            producer[out] = idx

    indegree: list[int] = [0] * len(nodes)
    adj: dict[int, set[int]] = {i: set() for i in range(len(nodes))}
    for v_idx, node in enumerate(nodes):
        for inp in node.inputs:
            u_idx = producer.get(inp)
            if u_idx is not None and v_idx not in adj[u_idx]:
                adj[u_idx].add(v_idx)
                indegree[v_idx] += 1

    # Kahn's algorithm, keeping source order among ready nodes
    queue: list[int] = [i for i, d in enumerate(indegree) if d == 0]
    order: list[int] = []
    while queue:
        u = queue.pop(0)
        order.append(u)
        for v in sorted(adj[u]):
            indegree[v] -= 1
            if indegree[v] == 0:
                queue.append(v)
        queue.sort()

    if len(order) != len(nodes):
        raise ValidationError("Cycle detected in source graph", code="ECYCLE")
    return [nodes[i] for i in order]


class ImportDriver:
    """
    Walks source nodes in topological order. Nodes with a registered hook are
    translated by it; every other node is mapped 1:1 onto a target operation.
    Each node is translated inside a graph transaction, so a failing node
    leaves nothing behind.
    """

    def __init__(
        self,
        registry: HookRegistry | None = None,
        config: ImportConfig | None = None,
    ) -> None:
        self.registry = registry if registry is not None else global_registry
        self.config = config or ImportConfig()

    @property
    def framework(self) -> str:
        return self.config.framework

    def run(
        self,
        graph: Graph,
        nodes: Sequence[SourceOperatorNode],
        dynamic_variables: Mapping[str, Any] | None = None,
    ) -> ImportReport:
        self.registry.freeze()
        report = ImportReport(graph=graph)
        resolver = VariableResolver(graph)
        dynamic = dict(dynamic_variables or {})

        for node in order_nodes(nodes):
            try:
                hooked = self.translate_node(graph, node, resolver, dynamic)
            except NodeTranslationError as e:
                if self.config.strict:
                    logger.error("Import aborted at %s: %s", node.identity, e)
                    raise
                logger.warning("Skipping %s: %s", node.identity, e)
                report.failures.append(
                    NodeFailure(
                        node=node.identity,
                        op_type=node.op_type,
                        node_name=node.name,
                        code=e.code,
                        message=str(e),
                    )
                )
                continue
            (report.hooked if hooked else report.generic).append(node.identity)

        logger.info(
            "Imported %d nodes (%d hooked, %d generic, %d failed)",
            len(nodes),
            len(report.hooked),
            len(report.generic),
            len(report.failures),
        )
        return report

    def translate_node(
        self,
        graph: Graph,
        node: SourceOperatorNode,
        input_resolver: InputResolver,
        dynamic_variables: Mapping[str, Any],
    ) -> bool:
        """Translate one node atomically. Returns True when a hook handled it."""
        hook = self.registry.lookup(node.op_type, self.framework, node.name)
        try:
            with graph.transaction():
                start = len(graph.operations)
                if hook is not None:
                    logger.debug("Hook %r handles %s", hook, node.identity)
                    result = hook.translate(
                        graph,
                        node.attributes,
                        list(node.outputs),
                        node,
                        input_resolver,
                        dynamic_variables,
                    )
                    self._check_result(graph, node, result)
                else:
                    logger.debug("Generic mapping for %s", node.identity)
                    self._generic(graph, node, input_resolver)
                if self.config.infer_shapes:
                    for op in graph.operations[start:]:
                        infer_operation(graph, op)
        except Exception as e:
            code = getattr(e, "code", None) or "EIMPORT"
            raise NodeTranslationError(
                f"Translation failed ({code}): {e}",
                node=node.identity,
                op_type=node.op_type,
                node_name=node.name,
                code=code,
            ) from e
        return hook is not None

    def _check_result(
        self, graph: Graph, node: SourceOperatorNode, result: TranslationResult
    ) -> None:
        declared = [n for n in node.outputs if n]
        unexpected = [name for name in result if name not in declared]
        if unexpected:
            raise UnexpectedOutputError(
                f"Hook bound undeclared outputs {unexpected}", node=node.identity
            )
        missing = [name for name in declared if not result.get(name)]
        if missing:
            raise MissingOutputError(
                f"Hook did not bind declared outputs {missing}", node=node.identity
            )
        for name, variables in result.items():
            for var in variables:
                if graph.get_variable(var.name) is not var:
                    raise MissingOutputError(
                        f"Output '{name}' refers to variable '{var.name}' that is not in the graph",
                        node=node.identity,
                    )

    def _generic(
        self, graph: Graph, node: SourceOperatorNode, input_resolver: InputResolver
    ) -> TranslationResult:
        # Empty names are omitted optional inputs/outputs
        inputs = [input_resolver(name) for name in node.inputs if name]
        outputs = [name for name in node.outputs if name]
        created = graph.emit(
            node.op_type,
            [v.name for v in inputs],
            outputs,
            node.attributes.to_dict(),
            name=node.name,
            dtype=inputs[0].dtype if inputs else "float32",
        )
        return {v.name: [v] for v in created}
