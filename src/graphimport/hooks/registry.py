from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from graphimport.errors import DuplicateRegistrationError, RegistryFrozenError

if TYPE_CHECKING:
    from graphimport.hooks.base import OperatorHook


@dataclass(frozen=True)
class HookKey:
    """(operator type, framework, node name). ``node_name=None`` matches any node."""
    op_name: str
    framework: str
    node_name: str | None = None

    def __post_init__(self) -> None:
        if not self.op_name:
            raise ValueError("HookKey.op_name must be non-empty")
        if not self.framework:
            raise ValueError("HookKey.framework must be non-empty")
        if self.node_name == "":
            # Empty node name is the wildcard
            object.__setattr__(self, "node_name", None)

    @property
    def is_wildcard(self) -> bool:
        return self.node_name is None

    def __str__(self) -> str:
        return f"{self.framework}:{self.op_name}:{self.node_name or '*'}"


class HookRegistry:
    """
    Maps HookKeys to hook instances.

    Populated at startup, then frozen; a frozen registry is read without locking.
    """

    def __init__(self) -> None:
        self._items: dict[HookKey, OperatorHook] = {}
        self._lock = threading.Lock()
        self._frozen = False

    def register(self, key: HookKey, hook: OperatorHook) -> None:
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(f"Registry is frozen; cannot register {key}")
            if key in self._items:
                raise DuplicateRegistrationError(f"Hook already registered for {key}")
            self._items[key] = hook

    def lookup(
        self, op_name: str, framework: str, node_name: str | None = None
    ) -> OperatorHook | None:
        # Specific registration beats the wildcard
        if node_name:
            hook = self._items.get(HookKey(op_name, framework, node_name))
            if hook is not None:
                return hook
        return self._items.get(HookKey(op_name, framework))

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def keys(self) -> list[HookKey]:
        return sorted(self._items, key=str)

    def items(self) -> list[tuple[HookKey, OperatorHook]]:
        return [(key, self._items[key]) for key in self.keys()]

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


global_registry = HookRegistry()

H = TypeVar("H", bound="type[OperatorHook]")


def import_hook(
    op_names: Iterable[str],
    framework: str,
    node_names: Iterable[str] = (),
    *,
    registry: HookRegistry | None = None,
) -> Callable[[H], H]:
    """
    Class decorator: instantiate the hook once and register it for every
    operator name, and for every listed node name (or as a wildcard).
    """

    def wrapper(cls: H) -> H:
        target = registry if registry is not None else global_registry
        hook = cls()
        names: list[str | None] = list(node_names) or [None]
        for op_name in op_names:
            for node_name in names:
                target.register(HookKey(op_name, framework, node_name), hook)
        return cls

    return wrapper
