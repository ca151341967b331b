from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from pyimgnorm.compress import DEFAULT_FLOOR_QUALITY, DEFAULT_QUALITY_STEP, CompressionBudget
from pyimgnorm.config.io import load_config
from pyimgnorm.utils.param_check import check_int, check_parameter

_CODECS = ("jpeg", "png")
_FIT_MODES = ("contain", "cover")


@dataclass(frozen=True)
class NormalizeSettings:
    """Defaults for a normalize run, usually read from a JSON/YAML file."""

    target_width: int = 800
    target_height: int = 600
    max_bytes: int = 100_000
    floor_quality: int = DEFAULT_FLOOR_QUALITY
    step: int = DEFAULT_QUALITY_STEP
    codec: str = "jpeg"
    density_override: Optional[float] = None
    fit: Optional[str] = None

    def __post_init__(self) -> None:
        check_int(self.target_width, low=1, param_name="target_width")
        check_int(self.target_height, low=1, param_name="target_height")
        if self.codec not in _CODECS:
            raise ValueError(f"codec must be one of {_CODECS}, got {self.codec!r}")
        if self.fit is not None and self.fit not in _FIT_MODES:
            raise ValueError(f"fit must be one of {_FIT_MODES} or null, got {self.fit!r}")
        if self.density_override is not None:
            check_parameter(self.density_override, low=0.0, include_left=False, param_name="density_override")
        # Validates max_bytes / floor_quality / step.
        self.budget()

    def budget(self) -> CompressionBudget:
        return CompressionBudget(max_bytes=self.max_bytes, floor_quality=self.floor_quality, step=self.step)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "NormalizeSettings":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ValueError(f"Unknown settings key(s): {unknown}. Known: {sorted(known)}")

        values = dict(payload)
        if "codec" in values:
            values["codec"] = str(values["codec"]).lower()
        if values.get("density_override") is not None:
            values["density_override"] = float(values["density_override"])
        return cls(**values)

    def merged(self, **overrides: Any) -> "NormalizeSettings":
        """Copy with every non-None override applied."""

        payload = {f.name: getattr(self, f.name) for f in fields(self)}
        payload.update({k: v for k, v in overrides.items() if v is not None})
        return type(self).from_mapping(payload)


def load_settings(path: str | Path) -> NormalizeSettings:
    return NormalizeSettings.from_mapping(load_config(path))
