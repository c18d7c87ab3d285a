from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from graphimport.importer.attributes import AttributeMap


@dataclass(frozen=True)
class SourceOperatorNode:
    """One operator node as read from the source framework's graph."""
    op_type: str
    name: str
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    attributes: AttributeMap = field(default_factory=AttributeMap)
    domain: str = ""

    @classmethod
    def create(
        cls,
        op_type: str,
        inputs: Sequence[str] = (),
        outputs: Sequence[str] = (),
        attributes: Mapping[str, Any] | None = None,
        *,
        name: str = "",
        domain: str = "",
    ) -> SourceOperatorNode:
        attrs = attributes if isinstance(attributes, AttributeMap) else AttributeMap(attributes)
        return cls(
            op_type=op_type,
            name=name or op_type,
            inputs=tuple(inputs),
            outputs=tuple(outputs),
            attributes=attrs,
            domain=domain,
        )

    @property
    def identity(self) -> str:
        return f"{self.op_type}:{self.name}"
