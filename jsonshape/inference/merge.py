import logging
from dataclasses import dataclass, field
from functools import reduce
from typing import Dict, List, Any, Iterable, Mapping, Sequence, Union, FrozenSet, TypeVar

from jsonshape.inference.inference import SchemaInferrer
from jsonshape.inference.profile import FieldProfile
from jsonshape.inference.types import InferredSchema, InferenceStats

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.95

Mergeable = TypeVar("Mergeable", InferredSchema, SchemaInferrer)


def _merge_profiles(left: Mapping[str, FieldProfile], right: Mapping[str, FieldProfile],
                    max_examples: int) -> Dict[str, FieldProfile]:
    merged: Dict[str, FieldProfile] = {}
    for path, profile in left.items():
        other = right.get(path)
        merged[path] = profile.merge(other, max_examples) if other is not None else profile.copy()
    for path, profile in right.items():
        if path not in merged:
            merged[path] = profile.copy()
    return merged


def merge_schemas(a: Mergeable, b: Mergeable) -> Mergeable:
    """
    Combine two partial schemas built over disjoint record populations.

    Accepts two finalized InferredSchemas (returns a new InferredSchema with
    thresholds re-applied to the combined counts) or two SchemaInferrers that
    are still accumulating (returns a new, still accumulating SchemaInferrer).
    Neither input is modified. The left operand's config is used for the result.
    """
    if isinstance(a, InferredSchema) and isinstance(b, InferredSchema):
        config = a.config
        profiles = _merge_profiles(a.profiles, b.profiles, config.max_examples)
        return InferredSchema.from_profiles(profiles, a.record_count + b.record_count, config)

    if isinstance(a, SchemaInferrer) and isinstance(b, SchemaInferrer):
        for inferrer in (a, b):
            inferrer._check_accumulating("merge_schemas")
        config = a.config
        profiles = _merge_profiles(a.profiles, b.profiles, config.max_examples)
        left, right = a.stats(), b.stats()
        stats = InferenceStats(
            records_submitted=left.records_submitted + right.records_submitted,
            records_sampled=left.records_sampled + right.records_sampled,
            parse_failures=left.parse_failures + right.parse_failures,
        )
        return SchemaInferrer._from_parts(config, profiles, stats, a._dropped_paths | b._dropped_paths)

    raise TypeError(
        f"merge_schemas needs two InferredSchemas or two SchemaInferrers, "
        f"got {type(a).__name__} and {type(b).__name__}"
    )


def merge_all(schemas: Iterable[Mergeable]) -> Mergeable:
    """Left-fold merge_schemas over a non-empty sequence of schemas."""
    schemas = list(schemas)
    if not schemas:
        raise ValueError("merge_all needs at least one schema")
    return reduce(merge_schemas, schemas)


def jaccard_similarity(set1: FrozenSet, set2: FrozenSet) -> float:
    """Compute Jaccard similarity between two sets."""
    if not set1 and not set2:
        return 1.0
    intersection = len(set1 & set2)
    union = len(set1 | set2)
    return intersection / union if union > 0 else 0.0


def schema_similarity(a: InferredSchema, b: InferredSchema) -> float:
    return jaccard_similarity(a.signature(), b.signature())


@dataclass
class SchemaGroup:
    """A cluster of similar schemas and their running merged representative."""
    group_id: int
    representative: InferredSchema
    members: List[Any] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.members)

    def __repr__(self):
        return f"SchemaGroup(id={self.group_id}, members={len(self.members)}, fields={len(self.representative)})"


def group_similar_schemas(schemas: Union[Sequence[InferredSchema], Mapping[Any, InferredSchema]],
                          threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> List[SchemaGroup]:
    """
    Cluster schemas by Jaccard similarity of their (path, type) signatures.

    Single greedy pass in input order: a schema joins the first group whose
    representative is at least `threshold` similar and is merged into it,
    otherwise it opens a new group. Members are recorded by index for
    sequences and by key for mappings (e.g. partition keys).
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be in [0, 1], got {threshold!r}")

    if isinstance(schemas, Mapping):
        items = list(schemas.items())
    else:
        items = list(enumerate(schemas))

    groups: List[SchemaGroup] = []
    for key, schema in items:
        signature = schema.signature()
        for group in groups:
            if jaccard_similarity(signature, group.representative.signature()) >= threshold:
                group.representative = merge_schemas(group.representative, schema)
                group.members.append(key)
                break
        else:
            groups.append(SchemaGroup(len(groups), schema, [key]))

    logger.info(f"Grouped {len(items)} schema(s) into {len(groups)} group(s) at threshold {threshold}")
    return groups
