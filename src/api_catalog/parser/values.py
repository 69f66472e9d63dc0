"""Dynamically-typed OpenAPI values (``default``, ``example``).

Source documents may carry these as any JSON type. They are held as a
closed tagged union and stored in the catalog as a single canonical string,
with best-effort re-inference of the original type on the way back out.
"""

import json
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

_INT_RE = re.compile(r"^[-+]?\d+$")
_FLOAT_RE = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$")


class JsonKind(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    NULL = "null"
    ARRAY = "array"
    OBJECT = "object"


class JsonValue(BaseModel):
    """A JSON value tagged with its kind."""

    model_config = ConfigDict(frozen=True)

    kind: JsonKind
    value: Any = None

    @classmethod
    def from_python(cls, raw: Any) -> "JsonValue":
        """Wrap a plain Python value decoded from JSON."""
        if isinstance(raw, JsonValue):
            return raw
        if raw is None:
            return cls(kind=JsonKind.NULL)
        # bool is a subclass of int
        if isinstance(raw, bool):
            return cls(kind=JsonKind.BOOL, value=raw)
        if isinstance(raw, int):
            return cls(kind=JsonKind.INT, value=raw)
        if isinstance(raw, float):
            return cls(kind=JsonKind.FLOAT, value=raw)
        if isinstance(raw, str):
            return cls(kind=JsonKind.STRING, value=raw)
        if isinstance(raw, (list, tuple)):
            return cls(kind=JsonKind.ARRAY, value=list(raw))
        if isinstance(raw, dict):
            return cls(kind=JsonKind.OBJECT, value=dict(raw))
        raise TypeError(f"Unsupported JSON value: {type(raw).__name__}")

    @classmethod
    def from_storage(cls, text: str) -> "JsonValue":
        """Re-infer a typed value from its canonical string form."""
        if _INT_RE.match(text):
            return cls(kind=JsonKind.INT, value=int(text))
        if _FLOAT_RE.match(text):
            return cls(kind=JsonKind.FLOAT, value=float(text))
        if text in ("true", "false"):
            return cls(kind=JsonKind.BOOL, value=text == "true")
        if text == "null":
            return cls(kind=JsonKind.NULL)
        if text.startswith(("[", "{")):
            try:
                return cls.from_python(json.loads(text))
            except json.JSONDecodeError:
                pass
        return cls(kind=JsonKind.STRING, value=text)

    def to_storage(self) -> str:
        """Render the canonical string stored in the catalog."""
        if self.kind is JsonKind.STRING:
            return self.value
        if self.kind is JsonKind.INT:
            return str(self.value)
        if self.kind is JsonKind.FLOAT:
            return "%g" % self.value
        if self.kind is JsonKind.BOOL:
            return "true" if self.value else "false"
        if self.kind is JsonKind.NULL:
            return "null"
        return json.dumps(self.value, separators=(",", ":"), ensure_ascii=False)

    def to_python(self) -> Any:
        return self.value


def storage_to_python(text: str | None) -> Any:
    """Convert a stored default/example back to a plain value for export."""
    if text is None:
        return None
    return JsonValue.from_storage(text).to_python()
