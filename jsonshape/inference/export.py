from collections import defaultdict
from typing import Dict, List, Any, Optional

from jsonshape.inference.types import TypeTag, InferredSchema, InferredField
from jsonshape.inference.utils import ARRAY_SEGMENT, join_path

JSON_SCHEMA_DRAFT = "http://json-schema.org/draft-07/schema#"

# Keys of the portable document that have no JSON Schema counterpart
_PORTABLE_ONLY_KEYS = ("nullable", "record_count")


class _Renderer:
    """Walks the kept field paths of an InferredSchema as a tree."""

    def __init__(self, inferred: InferredSchema):
        self.inferred = inferred
        self.children: Dict[Optional[str], List[str]] = defaultdict(list)
        for path, profile in inferred.profiles.items():
            # Array elements render as `items` of their parent, never as properties
            if path in inferred.fields and path != join_path(profile.parent, ARRAY_SEGMENT):
                self.children[profile.parent].append(path)

    def properties(self, parent: Optional[str]) -> Dict[str, Any]:
        node: Dict[str, Any] = {"properties": {}}
        required = []
        for path in self.children.get(parent, []):
            key = self.inferred.profiles[path].key
            node["properties"][key] = self.field(self.inferred.fields[path])
            if self.inferred.fields[path].required:
                required.append(key)
        if required:
            node["required"] = required
        return node

    def field(self, field: InferredField) -> Dict[str, Any]:
        if field.is_mixed:
            node = {"oneOf": [self.variant(field, tag) for tag in sorted(field.field_type)]}
        else:
            node = self.variant(field, field.field_type)

        node["nullable"] = field.nullable
        if field.examples:
            node["examples"] = list(field.examples)
        return node

    def variant(self, field: InferredField, tag: TypeTag) -> Dict[str, Any]:
        node: Dict[str, Any] = {"type": tag.value}

        if tag is TypeTag.OBJECT:
            node.update(self.properties(field.path))
        elif tag is TypeTag.ARRAY:
            element_path = join_path(field.path, ARRAY_SEGMENT)
            if element_path in self.inferred.fields:
                node["items"] = self.field(self.inferred.fields[element_path])
        elif tag in (TypeTag.INTEGER, TypeTag.NUMBER) and field.numeric_range is not None:
            node["minimum"], node["maximum"] = field.numeric_range[0], field.numeric_range[1]
        elif tag is TypeTag.STRING and field.format:
            node["format"] = field.format
        return node


def to_portable_schema(inferred: InferredSchema) -> Dict[str, Any]:
    """
    Render an InferredSchema as a generic, JSON-Schema-like document.

    Objects carry `properties` and `required`, arrays `items`, leaves their
    type, `nullable`, `format`, `minimum`/`maximum` and `examples`. Mixed
    fields become a `oneOf` over their constituent types.
    """
    renderer = _Renderer(inferred)
    document: Dict[str, Any] = {"type": "object", "record_count": inferred.record_count}
    document.update(renderer.properties(None))
    return document


def _json_schema_node(node: Dict[str, Any]) -> Dict[str, Any]:
    converted: Dict[str, Any] = {}
    for key, value in node.items():
        if key in _PORTABLE_ONLY_KEYS:
            continue
        if key == "properties":
            converted[key] = {name: _json_schema_node(child) for name, child in value.items()}
        elif key == "items":
            converted[key] = _json_schema_node(value)
        elif key == "oneOf":
            converted[key] = [_json_schema_node(variant) for variant in value]
        else:
            converted[key] = value

    if node.get("nullable"):
        if "oneOf" in converted:
            if {"type": "null"} not in converted["oneOf"]:
                converted["oneOf"].append({"type": "null"})
        elif converted.get("type") != "null":
            converted["type"] = [converted["type"], "null"]
    return converted


def to_json_schema(inferred: InferredSchema, title: Optional[str] = None) -> Dict[str, Any]:
    """Render an InferredSchema as a JSON Schema (draft-07) document."""
    document = {"$schema": JSON_SCHEMA_DRAFT}
    if title:
        document["title"] = title
    document.update(_json_schema_node(to_portable_schema(inferred)))
    return document
