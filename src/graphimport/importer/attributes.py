from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from graphimport.errors import AttributeTypeError


class AttributeKind(Enum):
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    TENSOR = "tensor"
    INTS = "ints"
    FLOATS = "floats"
    STRINGS = "strings"


@dataclass(frozen=True, eq=False)
class AttributeValue:
    """A framework attribute value tagged with its kind."""
    kind: AttributeKind
    value: Any

    @classmethod
    def of(cls, value: Any) -> AttributeValue:
        """Tag a plain Python/numpy value. Lists must be homogeneous."""
        if isinstance(value, AttributeValue):
            return value
        # bool before int: bool is an int subclass
        if isinstance(value, (bool, np.bool_)):
            return cls(AttributeKind.BOOL, bool(value))
        if isinstance(value, (int, np.integer)):
            return cls(AttributeKind.INT, int(value))
        if isinstance(value, (float, np.floating)):
            return cls(AttributeKind.FLOAT, float(value))
        if isinstance(value, bytes):
            return cls(AttributeKind.STRING, value.decode("utf-8", errors="ignore"))
        if isinstance(value, str):
            return cls(AttributeKind.STRING, value)
        if isinstance(value, np.ndarray):
            arr = value.copy()
            arr.setflags(write=False)
            return cls(AttributeKind.TENSOR, arr)
        if isinstance(value, (list, tuple)):
            items = list(value)
            if all(isinstance(v, (int, np.integer)) and not isinstance(v, (bool, np.bool_)) for v in items):
                return cls(AttributeKind.INTS, tuple(int(v) for v in items))
            if all(isinstance(v, (int, float, np.integer, np.floating)) for v in items):
                return cls(AttributeKind.FLOATS, tuple(float(v) for v in items))
            if all(isinstance(v, (str, bytes)) for v in items):
                return cls(
                    AttributeKind.STRINGS,
                    tuple(v.decode("utf-8", errors="ignore") if isinstance(v, bytes) else v for v in items),
                )
        raise AttributeTypeError(
            f"Unsupported attribute value of type {type(value).__name__}"
        )

    def unwrap(self) -> Any:
        """Plain Python value: lists for list kinds, ndarray for tensors."""
        if self.kind in (AttributeKind.INTS, AttributeKind.FLOATS, AttributeKind.STRINGS):
            return list(self.value)
        return self.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributeValue):
            return NotImplemented
        if other.kind is not self.kind:
            return False
        if self.kind is AttributeKind.TENSOR:
            return bool(np.array_equal(self.value, other.value))
        return bool(self.value == other.value)

    __hash__ = None  # type: ignore[assignment]


class AttributeMap(Mapping[str, AttributeValue]):
    """Immutable attribute name -> AttributeValue mapping with typed accessors."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, AttributeValue] = {
            name: AttributeValue.of(v) for name, v in (values or {}).items()
        }

    def __getitem__(self, key: str) -> AttributeValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v.value!r}" for k, v in self._values.items())
        return f"AttributeMap({inner})"

    def to_dict(self) -> dict[str, Any]:
        return {k: v.unwrap() for k, v in self._values.items()}

    def _expect(self, key: str, *kinds: AttributeKind) -> AttributeValue | None:
        item = self._values.get(key)
        if item is None:
            return None
        if item.kind not in kinds:
            expected = "/".join(k.value for k in kinds)
            raise AttributeTypeError(
                f"Attribute '{key}' is {item.kind.value}, expected {expected}"
            )
        return item

    def get_bool(self, key: str, default: bool = False) -> bool:
        item = self._expect(key, AttributeKind.BOOL, AttributeKind.INT)
        if item is None:
            return default
        if item.kind is AttributeKind.INT and item.value not in (0, 1):
            raise AttributeTypeError(
                f"Attribute '{key}' must be 0 or 1 to be read as bool, got {item.value}"
            )
        return bool(item.value)

    def get_int(self, key: str, default: int = 0) -> int:
        item = self._expect(key, AttributeKind.INT)
        return default if item is None else int(item.value)

    def get_float(self, key: str, default: float = 0.0) -> float:
        item = self._expect(key, AttributeKind.FLOAT, AttributeKind.INT)
        return default if item is None else float(item.value)

    def get_string(self, key: str, default: str = "") -> str:
        item = self._expect(key, AttributeKind.STRING)
        return default if item is None else str(item.value)

    def get_ints(self, key: str, default: list[int] | None = None) -> list[int]:
        item = self._expect(key, AttributeKind.INTS)
        if item is None:
            return list(default or [])
        return list(item.value)

    def get_floats(self, key: str, default: list[float] | None = None) -> list[float]:
        item = self._expect(key, AttributeKind.FLOATS, AttributeKind.INTS)
        if item is None:
            return list(default or [])
        return [float(v) for v in item.value]

    def get_strings(self, key: str, default: list[str] | None = None) -> list[str]:
        item = self._expect(key, AttributeKind.STRINGS)
        if item is None:
            return list(default or [])
        return list(item.value)

    def get_tensor(self, key: str, default: np.ndarray | None = None) -> np.ndarray | None:
        item = self._expect(key, AttributeKind.TENSOR)
        return default if item is None else item.value
