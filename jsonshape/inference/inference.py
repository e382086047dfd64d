import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Any, Optional, Iterable, Mapping, Set, Union

from jsonshape.inference.config import InferenceConfig
from jsonshape.inference.errors import ParseFailure, InvalidStateError
from jsonshape.inference.profile import FieldProfile
from jsonshape.inference.types import TypeTag, InferredSchema, InferenceStats
from jsonshape.inference.utils import ARRAY_SEGMENT, ROOT_PATH, escape_key, join_path

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    # json.loads accepts NaN and Infinity, which are not JSON
    raise ValueError(f"Invalid JSON constant: {name}")


class InferrerState(str, Enum):
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


@dataclass
class BatchResult:
    """Outcome of add_json_batch: how many records were accepted and which ones failed."""
    accepted: int = 0
    failures: List[ParseFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


class SchemaInferrer:
    """
    Incrementally derives a schema from a stream of JSON records.

    Records are folded path by path into FieldProfiles. Nothing is filtered
    until finalize(), which applies the configured thresholds once and returns
    an immutable InferredSchema. One instance is meant to be driven from a
    single thread; shard the stream over several instances and combine them
    with merge_schemas() for parallelism.
    """

    def __init__(self, config: Optional[InferenceConfig] = None):
        self.config = config or InferenceConfig()
        self.state = InferrerState.ACCUMULATING
        self._profiles: Dict[str, FieldProfile] = {}
        self._records_submitted = 0
        self._records_sampled = 0
        self._parse_failures = 0
        self._dropped_paths: Set[str] = set()
        self._schema: Optional[InferredSchema] = None
        self._cap_logged = False

    @property
    def is_finalized(self) -> bool:
        return self.state is InferrerState.FINALIZED

    @property
    def record_count(self) -> int:
        """Records actually folded into the profiles."""
        return self._records_sampled

    @property
    def profiles(self) -> Mapping[str, FieldProfile]:
        return MappingProxyType(self._profiles)

    def _check_accumulating(self, operation: str) -> None:
        if self.state is not InferrerState.ACCUMULATING:
            raise InvalidStateError(f"Cannot call {operation}() on a finalized SchemaInferrer")

    def add_value(self, value: Any) -> bool:
        """
        Fold one parsed record into the schema.

        Returns False when the record was counted but not folded because the
        sample cap has been reached.
        """
        self._check_accumulating("add_value")
        self._records_submitted += 1

        sample_size = self.config.sample_size
        if sample_size and self._records_sampled >= sample_size:
            if not self._cap_logged:
                logger.info(f"Sample size of {sample_size} reached; further records are counted but not analyzed")
                self._cap_logged = True
            return False

        self._records_sampled += 1
        seen: Set[str] = set()
        if isinstance(value, dict):
            self._walk_object(value, None, 0, seen)
        else:
            self._observe(ROOT_PATH, None, ROOT_PATH, value, 0, seen)
        return True

    def add_values(self, values: Iterable[Any]) -> int:
        """Fold several parsed records; returns how many were analyzed."""
        return sum(1 for value in values if self.add_value(value))

    def add_json(self, text: Union[str, bytes], index: Optional[int] = None) -> bool:
        """
        Parse a JSON text and fold it into the schema.

        Raises ParseFailure (after counting it) when the text is not valid JSON;
        field statistics are left untouched in that case.
        """
        self._check_accumulating("add_json")
        try:
            value = json.loads(text, parse_constant=_reject_constant)
        except (ValueError, TypeError) as e:
            self._parse_failures += 1
            failure = ParseFailure(str(e), text, index)
            logger.debug(f"Skipping unparseable record: {failure}")
            raise failure from e
        return self.add_value(value)

    def add_json_batch(self, records: Iterable[Union[str, bytes]]) -> BatchResult:
        """Parse and fold every text in `records`, collecting failures instead of stopping."""
        self._check_accumulating("add_json_batch")
        result = BatchResult()
        for index, text in enumerate(records):
            try:
                self.add_json(text, index=index)
            except ParseFailure as failure:
                result.failures.append(failure)
            else:
                result.accepted += 1

        if result.failures:
            logger.warning(f"{result.failed} of {result.accepted + result.failed} records in batch could not be parsed")
        return result

    def _walk_object(self, obj: Dict[str, Any], parent: Optional[str], depth: int, seen: Set[str]) -> None:
        for key, child in obj.items():
            key = str(key)
            path = join_path(parent, escape_key(key))
            self._observe(path, parent, key, child, depth + 1, seen)

    def _observe(self, path: str, parent: Optional[str], key: str, value: Any, depth: int, seen: Set[str]) -> None:
        profile = self._profiles.get(path)
        if profile is None:
            limit = self.config.max_tracked_paths
            if limit and len(self._profiles) >= limit:
                if path not in self._dropped_paths:
                    if not self._dropped_paths:
                        logger.warning(f"Tracked path limit of {limit} reached; new field paths are ignored")
                    self._dropped_paths.add(path)
                return
            profile = FieldProfile(path, parent, key)
            self._profiles[path] = profile

        first_in_record = path not in seen
        seen.add(path)
        tag = profile.observe(value, self.config, first_in_record)

        # The root record sits at depth 0 and is always expanded
        if depth and depth >= self.config.max_depth:
            return

        if tag is TypeTag.OBJECT:
            self._walk_object(value, path, depth, seen)
        elif tag is TypeTag.ARRAY:
            element_path = join_path(path, ARRAY_SEGMENT)
            for element in value:
                self._observe(element_path, path, ARRAY_SEGMENT, element, depth + 1, seen)

    def finalize(self) -> InferredSchema:
        """
        Stop accumulating and resolve the schema.

        Safe to call at any point; repeated calls return the same schema.
        """
        if self._schema is not None:
            return self._schema

        self.state = InferrerState.FINALIZED
        self._schema = InferredSchema.from_profiles(self._profiles, self._records_sampled, self.config)
        logger.info(
            f"Finalized schema: {len(self._schema)} of {len(self._profiles)} field paths kept "
            f"from {self._records_sampled} records"
        )
        return self._schema

    def stats(self) -> InferenceStats:
        return InferenceStats(
            records_submitted=self._records_submitted,
            records_sampled=self._records_sampled,
            parse_failures=self._parse_failures,
            tracked_paths=len(self._profiles),
            dropped_paths=len(self._dropped_paths),
        )

    @classmethod
    def _from_parts(cls, config: InferenceConfig, profiles: Dict[str, FieldProfile],
                    stats: InferenceStats, dropped_paths: Set[str]) -> "SchemaInferrer":
        inferrer = cls(config)
        inferrer._profiles = profiles
        inferrer._records_submitted = stats.records_submitted
        inferrer._records_sampled = stats.records_sampled
        inferrer._parse_failures = stats.parse_failures
        inferrer._dropped_paths = set(dropped_paths)
        return inferrer

    def __repr__(self):
        return (f"SchemaInferrer(state={self.state.value}, records={self._records_sampled}, "
                f"paths={len(self._profiles)})")
