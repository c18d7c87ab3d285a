"""Source-node records and the attribute/input resolvers hooks are built on."""

from .attributes import AttributeKind, AttributeMap, AttributeValue
from .resolver import InputResolver, VariableResolver, get_attribute, resolve_input
from .source import SourceOperatorNode

__all__ = [
    "AttributeKind",
    "AttributeMap",
    "AttributeValue",
    "InputResolver",
    "VariableResolver",
    "get_attribute",
    "resolve_input",
    "SourceOperatorNode",
]
