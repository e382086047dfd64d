import logging
import concurrent.futures
from pathlib import Path
from typing import Dict, List, Optional, Union

from jsonshape.json_loader import detect_layout, iter_numbered_lines, iter_values, LAYOUT_EMPTY, LAYOUT_LINES
from jsonshape.inference.config import InferenceConfig
from jsonshape.inference.errors import ParseFailure
from jsonshape.inference.inference import SchemaInferrer
from jsonshape.inference.merge import merge_all, group_similar_schemas, SchemaGroup, DEFAULT_SIMILARITY_THRESHOLD
from jsonshape.inference.types import InferredSchema, InferenceStats
from jsonshape.inference.reporting import generate_report, save_schemas_to_json

logger = logging.getLogger(__name__)

JSON_SUFFIXES = (".json", ".ndjson", ".jsonl")
# Skipped lines reported individually per file before only the total is logged
MAX_REPORTED_FAILURES = 5


def infer_file(filepath: Union[str, Path], config: Optional[InferenceConfig] = None) -> Optional[InferredSchema]:
    """Infer the schema of a single JSON, wrapped-JSON or NDJSON file."""
    schema, _ = infer_file_with_stats(filepath, config)
    return schema


def infer_file_with_stats(filepath: Union[str, Path], config: Optional[InferenceConfig] = None):
    """Like infer_file() but also returns the inferrer's InferenceStats."""
    filepath = Path(filepath)
    logger.info(f"Processing file: {filepath.name}")

    inferrer = SchemaInferrer(config)
    layout = detect_layout(filepath)

    if layout == LAYOUT_EMPTY:
        logger.warning(f"No records found in {filepath.name}")
        return None, inferrer.stats()

    if layout == LAYOUT_LINES:
        _add_lines(inferrer, filepath)
    else:
        inferrer.add_values(iter_values(filepath))

    stats = inferrer.stats()
    if stats.records_sampled == 0:
        logger.warning(f"No records found in {filepath.name}")
        return None, stats

    schema = inferrer.finalize()
    logger.info(
        f"Analyzed {stats.records_sampled} of {stats.records_submitted} records from {filepath.name}: "
        f"{len(schema.fields)} fields"
    )
    return schema, stats


def _add_lines(inferrer: SchemaInferrer, filepath: Path) -> int:
    """Fold every line of an NDJSON file, logging skipped lines by their line number."""
    failures = 0
    for line_number, line in iter_numbered_lines(filepath):
        try:
            inferrer.add_json(line, index=line_number)
        except ParseFailure as failure:
            failures += 1
            if failures <= MAX_REPORTED_FAILURES:
                logger.warning(f"{filepath.name}: line {line_number} skipped: {failure.message}")
    if failures > MAX_REPORTED_FAILURES:
        logger.warning(f"{filepath.name}: {failures} unparseable lines skipped in total")
    return failures


class SchemaReader:
    """Infers one schema per file in a directory and combines them."""

    def __init__(self, data_dir: str = "data", config: Optional[InferenceConfig] = None):
        """
        Initialize the SchemaReader.

        Args:
            data_dir: Directory containing JSON / NDJSON files
            config: Inference settings shared by every file
        """
        self.data_dir = Path(data_dir)
        self.config = config or InferenceConfig()
        self.schemas: Dict[str, InferredSchema] = {}
        self.stats: Dict[str, InferenceStats] = {}

    def infer_file(self, filepath: Path) -> Optional[InferredSchema]:
        """Infer schema for a single file."""
        return infer_file(filepath, self.config)

    def list_files(self) -> List[Path]:
        if not self.data_dir.exists():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")
        return sorted(p for p in self.data_dir.iterdir() if p.is_file() and p.suffix.lower() in JSON_SUFFIXES)

    def scan_directory(self, max_workers: int = 4) -> Dict[str, InferredSchema]:
        """
        Infer a schema for every JSON file in the data directory.

        Each file gets its own SchemaInferrer in a worker process; a file that
        fails to load is logged and skipped.
        """
        json_files = self.list_files()

        if not json_files:
            logger.warning(f"No JSON files found in {self.data_dir}")
            self.schemas = {}
            return self.schemas

        logger.info(f"Found {len(json_files)} JSON file(s) in {self.data_dir}")

        schemas: Dict[str, InferredSchema] = {}
        stats: Dict[str, InferenceStats] = {}
        max_workers = max(1, min(len(json_files), max_workers))

        with concurrent.futures.ProcessPoolExecutor(max_workers=max_workers) as executor:
            future_to_file = {
                executor.submit(infer_file_with_stats, json_file, self.config): json_file
                for json_file in json_files
            }

            for future in concurrent.futures.as_completed(future_to_file):
                json_file = future_to_file[future]
                try:
                    schema, file_stats = future.result()
                except Exception as e:
                    logger.error(f"File {json_file.name} generated an exception: {e}")
                    continue
                stats[json_file.name] = file_stats
                if schema is not None:
                    schemas[json_file.name] = schema

        # Keep directory order regardless of completion order
        self.schemas = {p.name: schemas[p.name] for p in json_files if p.name in schemas}
        self.stats = {p.name: stats[p.name] for p in json_files if p.name in stats}
        return self.schemas

    def merged_schema(self) -> Optional[InferredSchema]:
        """Merge every scanned file's schema into one."""
        if not self.schemas:
            return None
        return merge_all(self.schemas.values())

    def group(self, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> List[SchemaGroup]:
        """Cluster scanned files by schema similarity, keyed by file name."""
        return group_similar_schemas(self.schemas, threshold)

    def generate_report(self, output_path: str = "reports/schema_report.md") -> str:
        """Generate a human-readable schema report."""
        return generate_report(self.schemas, output_path)

    def save_schemas_to_json(self, output_path: str = "reports/schema_report.json") -> str:
        """Save schemas to JSON format for machine reading."""
        return save_schemas_to_json(self.schemas, output_path)
