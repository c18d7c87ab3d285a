from __future__ import annotations

import os
from dataclasses import dataclass

ENV_PREFIX = "GRAPHIMPORT_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


@dataclass
class ImportConfig:
    """Options for one graph import."""
    # Abort on the first failing node; otherwise record it and continue
    strict: bool = True
    validate: bool = True
    infer_shapes: bool = True
    framework: str = "onnx"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ImportConfig:
        defaults = cls()
        return cls(
            strict=_env_flag("STRICT", defaults.strict),
            validate=_env_flag("VALIDATE", defaults.validate),
            infer_shapes=_env_flag("INFER_SHAPES", defaults.infer_shapes),
            framework=os.environ.get(ENV_PREFIX + "FRAMEWORK", defaults.framework),
            log_level=os.environ.get(ENV_PREFIX + "LOG_LEVEL", defaults.log_level).upper(),
        )
