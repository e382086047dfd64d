"""
JSON Loader Module

Feeds records from files on disk to the inference engine. Top-level arrays
and wrapper objects ({"data": [...]}) are streamed with ijson; NDJSON files
are handed over line by line as raw text so that malformed lines surface as
parse failures instead of being silently dropped.
"""

import json
import logging
from pathlib import Path
from typing import List, Any, Iterator, Optional, Tuple, Union

import ijson
import json5

logger = logging.getLogger(__name__)

# Keys under which APIs commonly wrap their record arrays
WRAPPER_KEYS = ['data', 'results', 'items', 'records', 'rows', 'entries', 'features']

LAYOUT_ARRAY = "array"
LAYOUT_OBJECT = "object"
LAYOUT_LINES = "lines"
LAYOUT_EMPTY = "empty"


def detect_layout(filepath: Union[str, Path]) -> str:
    """
    Guess how records are laid out in a file.

    A single top-level object followed by more content is treated as NDJSON.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    with open(filepath, 'rb') as f:
        first = b''
        while True:
            char = f.read(1)
            if not char:
                break
            if not char.isspace():
                first = char
                break

    if not first:
        return LAYOUT_EMPTY
    if first == b'[':
        return LAYOUT_ARRAY
    if first == b'{' and _is_single_document(filepath):
        return LAYOUT_OBJECT
    return LAYOUT_LINES


def _is_single_document(filepath: Path) -> bool:
    # More than one non-blank line of JSON objects means NDJSON
    with open(filepath, 'r', encoding='utf-8') as f:
        non_blank = 0
        for line in f:
            stripped = line.strip()
            if not stripped:
                continue
            non_blank += 1
            if non_blank == 1:
                try:
                    json.loads(stripped)
                except json.JSONDecodeError:
                    # First line is not a whole document, so the object spans lines
                    return True
            else:
                return False
    return True


def iter_lines(filepath: Union[str, Path]) -> Iterator[str]:
    """Yield the raw, non-blank lines of an NDJSON file."""
    for _, line in iter_numbered_lines(filepath):
        yield line


def iter_numbered_lines(filepath: Union[str, Path]) -> Iterator[Tuple[int, str]]:
    """Yield `(line_number, line)` for the non-blank lines of an NDJSON file, counting from 1."""
    with open(filepath, 'r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if line:
                yield line_number, line


def iter_values(filepath: Union[str, Path]) -> Iterator[Any]:
    """Stream parsed records from a JSON array or a wrapper object."""
    filepath = Path(filepath)
    layout = detect_layout(filepath)

    if layout == LAYOUT_EMPTY:
        return
    if layout == LAYOUT_LINES:
        raise ValueError(f"{filepath.name} holds line-delimited records; use iter_lines() instead")

    yielded = 0
    try:
        if layout == LAYOUT_ARRAY:
            with open(filepath, 'rb') as f:
                for item in ijson.items(f, 'item', use_float=True):
                    yielded += 1
                    yield item
            return

        key = _find_wrapper_key(filepath)
        if key is not None:
            with open(filepath, 'rb') as f:
                for item in ijson.items(f, f'{key}.item', use_float=True):
                    yielded += 1
                    yield item
            return
    except ijson.JSONError as e:
        logger.warning(f"Streaming failed for {filepath.name}: {e}. Falling back to lenient load.")
        # Skip what was already streamed before the parser gave up
        yield from load_document(filepath)[yielded:]
        return

    # No wrapper array: the object itself is the record
    yield from load_document(filepath)


def _find_wrapper_key(filepath: Path) -> Optional[str]:
    """Return the preferred top-level key holding a record array, in one parse."""
    found = set()
    with open(filepath, 'rb') as f:
        for prefix, event, _ in ijson.parse(f):
            if event == 'start_array' and prefix in WRAPPER_KEYS:
                found.add(prefix)
                if prefix == WRAPPER_KEYS[0]:
                    break
    for key in WRAPPER_KEYS:
        if key in found:
            return key
    return None


def load_document(filepath: Union[str, Path]) -> List[Any]:
    """
    Load a whole JSON document into memory and return its records.

    Strict JSON is tried first, then JSON5 (comments, trailing commas,
    unquoted keys).
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        content = f.read().strip()

    if not content:
        return []

    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        # json5 raises ValueError subclasses on bad input
        data = json5.loads(content)

    return _normalize_data(data)


def _normalize_data(data: Any) -> List[Any]:
    """Unwrap a loaded document into its list of records."""
    if isinstance(data, list):
        return data

    if isinstance(data, dict):
        for key in WRAPPER_KEYS:
            if key in data and isinstance(data[key], list):
                return data[key]
        return [data]

    return [data]
