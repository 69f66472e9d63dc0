"""Error types shared by the decoder, importer, exporter and catalog store."""

from pydantic import BaseModel


class CatalogError(Exception):
    """Base class for all catalog errors."""


class DecodeError(CatalogError):
    """The document could not be turned into an OpenAPI AST.

    Raised for unparseable bytes, a non-mapping top level, or missing
    required fields (``info.title``, ``info.version``, ``paths``). Aborts
    the whole import before anything is written.
    """


class NotFoundError(CatalogError):
    """A catalog lookup by id or name found nothing."""


class UnsupportedFormatError(CatalogError, ValueError):
    """An unknown document format token was requested."""


class SkippedItemWarning(BaseModel):
    """A non-fatal import problem, reported in the import statistics."""

    kind: str  # parameter / response / operation / method / schema_link / schema_ref
    location: str  # e.g. "GET /users/{id}"
    reason: str

    def __str__(self) -> str:
        return f"[{self.kind}] {self.location}: {self.reason}"
