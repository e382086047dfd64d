from dataclasses import dataclass, asdict
from enum import Enum
from types import MappingProxyType
from typing import Dict, Any, Union, FrozenSet, Optional, Tuple, Mapping, TYPE_CHECKING

from jsonshape.inference.config import InferenceConfig
from jsonshape.inference.utils import select_format

if TYPE_CHECKING:
    from jsonshape.inference.profile import FieldProfile


class TypeTag(str, Enum):
    """JSON value kinds tracked per field path."""
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


# A resolved field type: one tag, or the set of incompatible tags seen (mixed).
FieldType = Union[TypeTag, FrozenSet[TypeTag]]


def type_label(field_type: FieldType) -> str:
    if isinstance(field_type, TypeTag):
        return field_type.value
    return f"mixed({', '.join(sorted(tag.value for tag in field_type))})"


@dataclass(frozen=True)
class InferredField:
    """Resolved description of a single field path."""
    path: str
    field_type: FieldType
    nullable: bool
    required: bool
    occurrence_count: int
    frequency: float
    format: Optional[str] = None
    numeric_range: Optional[Tuple[float, float, float]] = None  # (min, max, mean)
    examples: Tuple[Any, ...] = ()

    @property
    def is_mixed(self) -> bool:
        return not isinstance(self.field_type, TypeTag)

    @property
    def type_label(self) -> str:
        return type_label(self.field_type)

    def __repr__(self):
        return f"InferredField(path={self.path}, type={self.type_label}, required={self.required}, nullable={self.nullable})"


@dataclass(frozen=True)
class InferenceStats:
    """Counters describing what an inferrer was fed."""
    records_submitted: int = 0
    records_sampled: int = 0
    parse_failures: int = 0
    tracked_paths: int = 0
    dropped_paths: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class InferredSchema:
    """
    Immutable result of SchemaInferrer.finalize() or merge_schemas().

    `fields` holds the paths that survived frequency filtering. `profiles` keeps
    the accumulated statistics for every path seen, filtered or not, so that two
    schemas can be merged without losing counts.
    """

    def __init__(self, record_count: int, fields: Dict[str, InferredField],
                 profiles: Dict[str, "FieldProfile"], config: InferenceConfig):
        self._record_count = record_count
        self._fields = dict(fields)
        self._profiles = dict(profiles)
        self._config = config

    @property
    def record_count(self) -> int:
        return self._record_count

    @property
    def fields(self) -> Mapping[str, InferredField]:
        return MappingProxyType(self._fields)

    @property
    def profiles(self) -> Mapping[str, "FieldProfile"]:
        return MappingProxyType(self._profiles)

    @property
    def config(self) -> InferenceConfig:
        return self._config

    def __contains__(self, path: str) -> bool:
        return path in self._fields

    def __getitem__(self, path: str) -> InferredField:
        return self._fields[path]

    def __len__(self) -> int:
        return len(self._fields)

    def signature(self) -> FrozenSet[Tuple[str, str]]:
        """The (path, type) pairs used to compare schemas for similarity."""
        return frozenset((path, field.type_label) for path, field in self._fields.items())

    @classmethod
    def from_profiles(cls, profiles: Mapping[str, "FieldProfile"], record_count: int,
                      config: InferenceConfig) -> "InferredSchema":
        """Apply frequency, required and format decisions to accumulated profiles."""
        fields = {}
        for path, profile in profiles.items():
            if record_count <= 0:
                break
            frequency = profile.occurrence_count / record_count
            if frequency < config.min_field_frequency:
                continue

            numeric_range = None
            if profile.numeric_stats is not None and profile.numeric_stats.count:
                stats = profile.numeric_stats
                numeric_range = (stats.min, stats.max, stats.mean)

            field_format = None
            if config.detect_formats:
                field_format = select_format(profile.format_matches, profile.string_count,
                                             config.format_match_threshold)

            fields[path] = InferredField(
                path=path,
                field_type=profile.resolved_type,
                nullable=profile.null_count > 0,
                required=profile.occurrence_count == record_count and profile.null_count == 0,
                occurrence_count=profile.occurrence_count,
                frequency=frequency,
                format=field_format,
                numeric_range=numeric_range,
                examples=tuple(profile.examples),
            )

        return cls(record_count, fields, profiles, config)

    def __eq__(self, other):
        if not isinstance(other, InferredSchema):
            return NotImplemented
        return self._record_count == other._record_count and self._fields == other._fields

    def __repr__(self):
        return f"InferredSchema(records={self._record_count}, fields={len(self._fields)})"
