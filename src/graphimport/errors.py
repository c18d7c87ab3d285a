from __future__ import annotations


class GraphImportError(Exception):
    """Base import error with a rule code and the offending node's identity."""

    default_code = "EIMPORT"

    def __init__(
        self, message: str, code: str | None = None, node: str | None = None
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.node = node

    def __str__(self) -> str:
        message = super().__str__()
        if self.node:
            return f"[{self.node}] {message}"
        return message


class DuplicateRegistrationError(GraphImportError):
    default_code = "EDUP_HOOK"


class RegistryFrozenError(GraphImportError):
    default_code = "EREG_FROZEN"


class UnresolvedInputError(GraphImportError):
    default_code = "EUNRESOLVED"


class ArityMismatchError(GraphImportError):
    default_code = "EARITY"


class NonConstantAxisError(GraphImportError):
    default_code = "EAXIS_CONST"


class IndexOutOfRangeError(GraphImportError):
    default_code = "EINDEX"


class AttributeTypeError(GraphImportError):
    default_code = "EATTR_TYPE"


class MissingOutputError(GraphImportError):
    default_code = "EOUTPUT_MISSING"


class UnexpectedOutputError(GraphImportError):
    default_code = "EOUTPUT_UNEXPECTED"


class NodeTranslationError(GraphImportError):
    """
    Node-level translation failure. ``code`` is the rule code of the underlying
    error, which is also chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        node: str,
        op_type: str,
        node_name: str,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code, node=node)
        self.op_type = op_type
        self.node_name = node_name
