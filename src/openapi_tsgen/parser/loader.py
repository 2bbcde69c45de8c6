"""OpenAPI document loader.

Parses OpenAPI 3.x documents (JSON or YAML) into ApiDocument models.
"""

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from openapi_tsgen.parser.base import ApiDocument
from openapi_tsgen.parser.detect import detect_format

logger = logging.getLogger(__name__)


class DocumentLoadError(Exception):
    """The file could not be parsed into an API description document."""

    def __init__(self, file_path: Path, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"{file_path}: {reason}")


def _key(key: object) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    return str(key)


def string_keys(value: object, file_path: Path = Path("<memory>")) -> object:
    """Turn every mapping key into a string.

    YAML reads keys like `yes`, `200` or `1.5` as bool, int or float; JSON
    documents only ever have string keys.
    """
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            key = _key(k)
            if key in out:
                raise DocumentLoadError(file_path, f"duplicate mapping key {key!r}")
            out[key] = string_keys(v, file_path)
        return out
    if isinstance(value, list):
        return [string_keys(v, file_path) for v in value]
    return value


def load_document(file_path: Path, fmt: str = "auto") -> ApiDocument:
    """Load an OpenAPI file into an ApiDocument."""
    try:
        if fmt == "auto":
            fmt = detect_format(file_path)
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentLoadError(file_path, f"cannot read file: {e}") from e
    logger.debug("loading %s as %s", file_path, fmt)

    try:
        data = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DocumentLoadError(file_path, f"cannot parse {fmt}: {e}") from e

    return parse_document(data, file_path)


def parse_document(data: object, file_path: Path = Path("<memory>")) -> ApiDocument:
    """Validate an already-parsed JSON/YAML tree into an ApiDocument."""
    if not isinstance(data, dict):
        raise DocumentLoadError(file_path, "document root is not a mapping")
    data = string_keys(data, file_path)
    try:
        return ApiDocument.model_validate(data)
    except ValidationError as e:
        raise DocumentLoadError(file_path, f"invalid document: {e.error_count()} error(s)\n{e}") from e
