"""OpenAPI document decoder.

Turns raw JSON or YAML bytes into a ``SchemaDocument``. YAML is loaded into
a plain tree and pushed through the JSON path, so there is a single decoding
implementation for both formats.
"""

import datetime
import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from api_catalog.errors import DecodeError

from .detect import detect_format, strip_bom
from .document import SchemaDocument

logger = logging.getLogger(__name__)


def decode(data: bytes, fmt: str | None = None, filename: str | None = None) -> SchemaDocument:
    """Decode document bytes into a ``SchemaDocument``.

    Raises DecodeError when the bytes do not parse, the top level is not a
    mapping, or a required field (``info.title``, ``info.version``,
    ``paths``) is missing.
    """
    fmt = detect_format(data, filename=filename, fmt=fmt)
    if fmt == "yaml":
        data = _yaml_to_json(data)
    return _decode_json(data)


def decode_file(file_path: Path, fmt: str | None = None) -> SchemaDocument:
    """Decode an OpenAPI file, using its extension as a format hint."""
    return decode(file_path.read_bytes(), fmt=fmt, filename=file_path.name)


def _yaml_to_json(data: bytes) -> bytes:
    try:
        tree = yaml.safe_load(strip_bom(data).decode("utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise DecodeError(f"Invalid YAML document: {e}") from e
    try:
        return json.dumps(tree, default=_json_default).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise DecodeError(f"YAML document cannot be represented as JSON: {e}") from e


def _json_default(value):
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_json(data: bytes) -> SchemaDocument:
    try:
        tree = json.loads(strip_bom(data).decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"Invalid JSON document: {e}") from e

    if not isinstance(tree, dict):
        raise DecodeError("OpenAPI document must be a mapping at the top level")

    try:
        document = SchemaDocument.model_validate(tree)
    except ValidationError as e:
        raise DecodeError(f"Invalid OpenAPI document: {_describe(e)}") from e

    logger.debug(
        "Decoded %r v%s: %d paths, %d schemas",
        document.info.title,
        document.info.version,
        len(document.paths),
        len(document.components.schemas),
    )
    return document


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)
