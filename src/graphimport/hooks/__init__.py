"""Per-operator import hooks and the registry that dispatches to them."""

from .base import OperatorHook, TranslationResult, literal_scalar
from .registry import HookKey, HookRegistry, global_registry, import_hook

# Import hook modules so their registrations run
from . import constant  # noqa: E402,F401
from . import cumsum  # noqa: E402,F401

__all__ = [
    "OperatorHook",
    "TranslationResult",
    "literal_scalar",
    "HookKey",
    "HookRegistry",
    "global_registry",
    "import_hook",
    "constant",
    "cumsum",
]
