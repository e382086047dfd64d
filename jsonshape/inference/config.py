from dataclasses import dataclass, asdict, fields
from typing import Dict, Any

from jsonshape.inference.errors import ConfigError


@dataclass(frozen=True)
class InferenceConfig:
    """
    Tuning knobs for a SchemaInferrer.

    Args:
        sample_size: Maximum number of records folded into the schema (0 = all).
        min_field_frequency: Fields present in fewer than this fraction of records are dropped at finalize.
        detect_formats: Run the semantic format detector on string values.
        max_depth: Nesting depth up to which object/array children are profiled.
        collect_examples: Keep example values per field.
        max_examples: Per-field cap on example values.
        format_match_threshold: Fraction of string values that must match a format for it to be reported.
        max_tracked_paths: Cap on distinct field paths tracked by one inferrer (0 = unbounded).
    """

    sample_size: int = 0
    min_field_frequency: float = 0.0
    detect_formats: bool = True
    max_depth: int = 10
    collect_examples: bool = True
    max_examples: int = 5
    format_match_threshold: float = 0.9
    max_tracked_paths: int = 0

    def __post_init__(self):
        for name in ("min_field_frequency", "format_match_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be a fraction in [0, 1], got {value!r}")

        for name in ("sample_size", "max_depth", "max_examples", "max_tracked_paths"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"{name} must be a non-negative integer, got {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InferenceConfig":
        """Build a config from a dict, ignoring keys this version does not know."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
