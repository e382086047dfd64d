import math
from typing import Dict, List, Any, Optional, Set, Tuple

from jsonshape.inference.config import InferenceConfig
from jsonshape.inference.types import TypeTag, FieldType
from jsonshape.inference.utils import detect_format

_SCALAR_TAGS = (TypeTag.BOOLEAN, TypeTag.INTEGER, TypeTag.NUMBER, TypeTag.STRING)


def classify(value: Any) -> TypeTag:
    """Classify a parsed JSON value."""
    if value is None:
        return TypeTag.NULL
    elif isinstance(value, bool):
        return TypeTag.BOOLEAN
    elif isinstance(value, int):
        return TypeTag.INTEGER
    elif isinstance(value, float):
        return TypeTag.NUMBER
    elif isinstance(value, str):
        return TypeTag.STRING
    elif isinstance(value, (list, tuple)):
        return TypeTag.ARRAY
    elif isinstance(value, dict):
        return TypeTag.OBJECT
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def promote(type_counts: Dict[TypeTag, int]) -> Dict[TypeTag, int]:
    """Fold integer observations into number once both have been seen (in place)."""
    if TypeTag.INTEGER in type_counts and TypeTag.NUMBER in type_counts:
        type_counts[TypeTag.NUMBER] += type_counts.pop(TypeTag.INTEGER)
    return type_counts


def resolve_type(type_counts: Dict[TypeTag, int]) -> FieldType:
    """Collapse observed tags into one type, or the set of them when they conflict."""
    tags = [tag for tag, count in type_counts.items() if count > 0]
    if not tags:
        return TypeTag.NULL
    if len(tags) == 1:
        return tags[0]
    return frozenset(tags)


def _is_non_finite(value: Any) -> bool:
    # 1e400 parses to inf, which has no JSON spelling
    return isinstance(value, float) and not math.isfinite(value)


def _example_key(value: Any) -> Tuple[str, Any]:
    # 1, 1.0 and True compare equal in Python but are distinct JSON examples
    return (type(value).__name__, value)


class NumericStats:
    """Streaming min / max / mean over numeric observations."""

    def __init__(self, min_value: Any = None, max_value: Any = None, mean: float = 0.0, count: int = 0):
        self.min = min_value
        self.max = max_value
        self.mean = mean
        self.count = count

    def update(self, value: Any) -> bool:
        """Fold one number in; non-finite values are ignored and return False."""
        try:
            as_float = float(value)
        except OverflowError:
            as_float = math.inf
        if not math.isfinite(as_float):
            return False

        self.count += 1
        # Incremental mean keeps precision bounded for very large counts
        self.mean += (as_float - self.mean) / self.count
        if self.min is None or value < self.min:
            self.min = value
        if self.max is None or value > self.max:
            self.max = value
        return True

    def merge(self, other: "NumericStats") -> "NumericStats":
        if self.count == 0:
            return other.copy()
        if other.count == 0:
            return self.copy()
        count = self.count + other.count
        mean = self.mean + (other.mean - self.mean) * (other.count / count)
        return NumericStats(
            min(self.min, other.min),
            max(self.max, other.max),
            mean,
            count,
        )

    def copy(self) -> "NumericStats":
        return NumericStats(self.min, self.max, self.mean, self.count)

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max, "mean": self.mean, "count": self.count}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NumericStats":
        return cls(data.get("min"), data.get("max"), data.get("mean", 0.0), data.get("count", 0))

    def __eq__(self, other):
        if not isinstance(other, NumericStats):
            return NotImplemented
        return (self.min, self.max, self.mean, self.count) == (other.min, other.max, other.mean, other.count)

    def __repr__(self):
        return f"NumericStats(min={self.min}, max={self.max}, mean={self.mean:.4g}, count={self.count})"


class FieldProfile:
    """
    Mutable statistics for one field path.

    `occurrence_count` counts records in which the path was present, while
    `value_count` counts every observation (a path below an array is observed
    once per element).
    """

    def __init__(self, path: str, parent: Optional[str] = None, key: Optional[str] = None):
        self.path = path
        self.parent = parent
        self.key = key if key is not None else path
        self.occurrence_count = 0
        self.value_count = 0
        self.null_count = 0
        self.type_counts: Dict[TypeTag, int] = {}
        self.numeric_stats: Optional[NumericStats] = None
        self.examples: List[Any] = []
        self._example_keys: Set[Tuple[str, Any]] = set()
        self.format_matches: Dict[str, int] = {}

    @property
    def resolved_type(self) -> FieldType:
        return resolve_type(self.type_counts)

    @property
    def string_count(self) -> int:
        return self.type_counts.get(TypeTag.STRING, 0)

    @property
    def nullable(self) -> bool:
        return self.null_count > 0

    def observe(self, value: Any, config: InferenceConfig, first_in_record: bool = True) -> TypeTag:
        """Fold one value into the profile and return its tag."""
        tag = classify(value)

        if first_in_record:
            self.occurrence_count += 1
        self.value_count += 1

        if tag is TypeTag.NULL:
            self.null_count += 1
            return tag

        self.type_counts[tag] = self.type_counts.get(tag, 0) + 1
        promote(self.type_counts)

        if tag in (TypeTag.INTEGER, TypeTag.NUMBER):
            stats = self.numeric_stats or NumericStats()
            if stats.update(value):
                self.numeric_stats = stats

        if tag is TypeTag.STRING and config.detect_formats:
            name = detect_format(value)
            if name is not None:
                self.format_matches[name] = self.format_matches.get(name, 0) + 1

        if config.collect_examples and tag in _SCALAR_TAGS and not _is_non_finite(value):
            self._add_example(value, config.max_examples)

        return tag

    def _add_example(self, value: Any, max_examples: int) -> bool:
        if len(self.examples) >= max_examples:
            return False
        key = _example_key(value)
        if key in self._example_keys:
            return False
        self._example_keys.add(key)
        self.examples.append(value)
        return True

    def merge(self, other: "FieldProfile", max_examples: int) -> "FieldProfile":
        """
        Combine two profiles of the same path into a new one.

        Counts add up, the numeric range widens and types are unioned with the
        usual promotion rules. Examples from the left operand win when the
        combined set has to be truncated.
        """
        if other.path != self.path:
            raise ValueError(f"Cannot merge profiles of different paths: {self.path!r} and {other.path!r}")

        merged = FieldProfile(self.path, self.parent, self.key)
        merged.occurrence_count = self.occurrence_count + other.occurrence_count
        merged.value_count = self.value_count + other.value_count
        merged.null_count = self.null_count + other.null_count

        for tag, count in list(self.type_counts.items()) + list(other.type_counts.items()):
            merged.type_counts[tag] = merged.type_counts.get(tag, 0) + count
        promote(merged.type_counts)

        if self.numeric_stats is not None and other.numeric_stats is not None:
            merged.numeric_stats = self.numeric_stats.merge(other.numeric_stats)
        elif self.numeric_stats is not None or other.numeric_stats is not None:
            merged.numeric_stats = (self.numeric_stats or other.numeric_stats).copy()

        for name, count in list(self.format_matches.items()) + list(other.format_matches.items()):
            merged.format_matches[name] = merged.format_matches.get(name, 0) + count

        for value in self.examples + other.examples:
            merged._add_example(value, max_examples)

        return merged

    def copy(self) -> "FieldProfile":
        clone = FieldProfile(self.path, self.parent, self.key)
        clone.occurrence_count = self.occurrence_count
        clone.value_count = self.value_count
        clone.null_count = self.null_count
        clone.type_counts = dict(self.type_counts)
        clone.numeric_stats = self.numeric_stats.copy() if self.numeric_stats is not None else None
        clone.examples = list(self.examples)
        clone._example_keys = set(self._example_keys)
        clone.format_matches = dict(self.format_matches)
        return clone

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "parent": self.parent,
            "key": self.key,
            "occurrence_count": self.occurrence_count,
            "value_count": self.value_count,
            "null_count": self.null_count,
            "type_counts": {tag.value: count for tag, count in self.type_counts.items()},
            "numeric_stats": self.numeric_stats.to_dict() if self.numeric_stats is not None else None,
            "examples": list(self.examples),
            "format_matches": dict(self.format_matches),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldProfile":
        profile = cls(data["path"], data.get("parent"), data.get("key"))
        profile.occurrence_count = data.get("occurrence_count", 0)
        profile.value_count = data.get("value_count", profile.occurrence_count)
        profile.null_count = data.get("null_count", 0)
        profile.type_counts = {TypeTag(tag): count for tag, count in data.get("type_counts", {}).items()}
        if data.get("numeric_stats"):
            profile.numeric_stats = NumericStats.from_dict(data["numeric_stats"])
        for value in data.get("examples", []):
            key = _example_key(value)
            if key not in profile._example_keys:
                profile._example_keys.add(key)
                profile.examples.append(value)
        profile.format_matches = dict(data.get("format_matches", {}))
        return profile

    def __repr__(self):
        return (f"FieldProfile(path={self.path}, occurrences={self.occurrence_count}, "
                f"nulls={self.null_count}, types={dict((t.value, c) for t, c in self.type_counts.items())})")
