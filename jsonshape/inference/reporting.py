import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, Any

from jsonshape.inference.config import InferenceConfig
from jsonshape.inference.profile import FieldProfile
from jsonshape.inference.types import InferredSchema

logger = logging.getLogger(__name__)


def schema_to_dict(schema: InferredSchema) -> Dict[str, Any]:
    """
    Serialize a schema to JSON-safe data.

    The per-path profiles are included so that a loaded schema can still be
    merged with others; the resolved fields are included for readers that
    only want the result.
    """
    fields = {}
    for path, field in schema.fields.items():
        fields[path] = {
            "type": field.type_label if not field.is_mixed else sorted(tag.value for tag in field.field_type),
            "nullable": field.nullable,
            "required": field.required,
            "frequency": field.frequency,
            "format": field.format,
            "numeric_range": list(field.numeric_range) if field.numeric_range is not None else None,
            "examples": list(field.examples),
        }

    return {
        "record_count": schema.record_count,
        "config": schema.config.to_dict(),
        "fields": fields,
        "profiles": [profile.to_dict() for profile in schema.profiles.values()],
    }


def schema_from_dict(data: Dict[str, Any]) -> InferredSchema:
    """Rebuild a schema from schema_to_dict() output; fields are re-derived from the profiles."""
    config = InferenceConfig.from_dict(data.get("config", {}))
    profiles = {}
    for profile_data in data.get("profiles", []):
        profile = FieldProfile.from_dict(profile_data)
        profiles[profile.path] = profile
    return InferredSchema.from_profiles(profiles, data["record_count"], config)


def save_schemas_to_json(schemas: Dict[str, InferredSchema], output_path: str = "reports/schema_report.json") -> str:
    """Save schemas to JSON format for machine reading."""
    if not schemas:
        logger.warning("No schemas available to save.")
        return ""

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    schemas_dict = {name: schema_to_dict(schema) for name, schema in schemas.items()}

    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(schemas_dict, f, indent=2, ensure_ascii=False, default=str)

    logger.info(f"Schemas saved to JSON: {output_file}")
    return str(output_file)


def load_schemas_from_json(json_path: str) -> Dict[str, InferredSchema]:
    """Load schemas from a JSON file."""
    json_file = Path(json_path)

    if not json_file.exists():
        raise FileNotFoundError(f"Schema report JSON not found: {json_path}")

    with open(json_file, 'r', encoding='utf-8') as f:
        schemas_dict = json.load(f)

    schemas = {name: schema_from_dict(data) for name, data in schemas_dict.items()}

    logger.info(f"Loaded {len(schemas)} schema(s) from {json_path}")
    return schemas


def _cell(value: Any, limit: int = 50) -> str:
    text = str(value)
    if len(text) > limit:
        text = text[:limit - 3] + "..."
    return text.replace("|", "\\|")  # Escape pipe for markdown


def generate_report(schemas: Dict[str, InferredSchema], output_path: str = "reports/schema_report.md") -> str:
    """Generate a human-readable schema report, plus its JSON twin next to it."""
    if not schemas:
        logger.warning("No schemas available to generate report.")
        return ""

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    lines = []
    lines.append("# Inferred Schema Report")
    lines.append("")
    lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("")
    lines.append("---")
    lines.append("")

    for name, schema in schemas.items():
        lines.append(f"## Schema: {name}")
        lines.append("")
        lines.append(f"- **Records Analyzed:** {schema.record_count}")
        lines.append(f"- **Fields Kept:** {len(schema.fields)} of {len(schema.profiles)}")
        lines.append("")
        lines.append("| Field Path | Type | Required | Nullable | Format | Range | Examples |")
        lines.append("|------------|------|----------|----------|--------|-------|----------|")

        for path in sorted(schema.fields.keys()):
            field = schema.fields[path]

            range_str = "-"
            if field.numeric_range is not None:
                low, high, mean = field.numeric_range
                range_str = f"{low} - {high} (mean: {mean:.2f})"

            examples_str = ", ".join(str(v) for v in field.examples) if field.examples else "-"

            lines.append(
                f"| `{_cell(path)}` | {_cell(field.type_label)} | {'Yes' if field.required else 'No'} "
                f"| {'Yes' if field.nullable else 'No'} | {field.format or '-'} | {_cell(range_str)} "
                f"| {_cell(examples_str)} |"
            )

        lines.append("")
        lines.append("---")
        lines.append("")

    with open(output_file, 'w', encoding='utf-8') as f:
        f.write("\n".join(lines))

    logger.info(f"Schema report written to {output_file}")

    # Also save schemas in JSON format for machine reading
    save_schemas_to_json(schemas, str(output_file.with_suffix('.json')))

    return str(output_file)
