from jsonshape.inference.config import InferenceConfig
from jsonshape.inference.errors import InferenceError, ConfigError, ParseFailure, InvalidStateError
from jsonshape.inference.types import TypeTag, InferredField, InferredSchema, InferenceStats
from jsonshape.inference.profile import FieldProfile, NumericStats, classify, promote, resolve_type
from jsonshape.inference.utils import detect_format, select_format, FORMAT_NAMES, ARRAY_SEGMENT, ROOT_PATH, escape_key
from jsonshape.inference.inference import SchemaInferrer, InferrerState, BatchResult
from jsonshape.inference.merge import (
    merge_schemas, merge_all, group_similar_schemas, jaccard_similarity, schema_similarity, SchemaGroup
)
from jsonshape.inference.export import to_portable_schema, to_json_schema
from jsonshape.inference.reporting import (
    schema_to_dict, schema_from_dict, save_schemas_to_json, load_schemas_from_json, generate_report
)
from jsonshape.inference.core import SchemaReader, infer_file

__all__ = [
    "InferenceConfig",
    "InferenceError", "ConfigError", "ParseFailure", "InvalidStateError",
    "TypeTag", "InferredField", "InferredSchema", "InferenceStats",
    "FieldProfile", "NumericStats", "classify", "promote", "resolve_type",
    "detect_format", "select_format", "FORMAT_NAMES", "ARRAY_SEGMENT", "ROOT_PATH", "escape_key",
    "SchemaInferrer", "InferrerState", "BatchResult",
    "merge_schemas", "merge_all", "group_similar_schemas", "jaccard_similarity", "schema_similarity",
    "SchemaGroup",
    "to_portable_schema", "to_json_schema",
    "schema_to_dict", "schema_from_dict", "save_schemas_to_json", "load_schemas_from_json", "generate_report",
    "SchemaReader", "infer_file",
]
