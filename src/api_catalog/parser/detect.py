"""Auto-detect the serialization format of an OpenAPI document."""

from pathlib import PurePath

from api_catalog.errors import UnsupportedFormatError

FORMATS = ("json", "yaml")

_EXTENSIONS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def detect_format(data: bytes, filename: str | None = None, fmt: str | None = None) -> str:
    """Resolve the format of a document.

    An explicit ``fmt`` wins, then the file extension of ``filename``, then
    the content: a first non-whitespace byte of ``{`` or ``[`` means JSON,
    anything else is treated as YAML.

    Returns: 'json' or 'yaml'.
    """
    if fmt and fmt != "auto":
        fmt = fmt.lower()
        if fmt not in FORMATS:
            raise UnsupportedFormatError(f"Unsupported document format: {fmt}")
        return fmt

    if filename:
        by_extension = _EXTENSIONS.get(PurePath(filename).suffix.lower())
        if by_extension:
            return by_extension

    head = strip_bom(data).lstrip()[:1]
    if head in (b"{", b"["):
        return "json"
    return "yaml"


def strip_bom(data: bytes) -> bytes:
    if data.startswith(b"\xef\xbb\xbf"):
        return data[3:]
    return data
