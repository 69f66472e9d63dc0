"""Flatten ``components.schemas`` into a deduplicated list of named schemas.

Only root schemas are emitted. Inline nested schemas are projected as
attributes of their parent, and ``$ref`` properties are resolved later by
name, so the walk never follows references and cannot loop on self- or
mutually-referential schemas.
"""

from typing import NamedTuple

from .document import SchemaNode
from .names import ref_name


class ExtractedSchema(NamedTuple):
    name: str
    schema: SchemaNode
    is_root: bool = True


def extract_all(schemas: dict[str, SchemaNode]) -> list[ExtractedSchema]:
    """Return the root schemas in source order, each name at most once."""
    extracted: list[ExtractedSchema] = []
    processed: set[str] = set()
    for name, schema in schemas.items():
        if name in processed:
            continue
        processed.add(name)
        extracted.append(ExtractedSchema(name=name, schema=schema, is_root=True))
    return extracted


def referenced_names(schema: SchemaNode) -> set[str]:
    """Collect the names of every schema referenced from ``schema``.

    Walks properties, items and compositions. Only inline nodes are
    descended into; references are recorded, never followed.
    """
    found: set[str] = set()
    pending = [schema]
    while pending:
        node = pending.pop()
        if node.ref is not None:
            found.add(ref_name(node.ref))
            continue
        if node.items is not None:
            pending.append(node.items)
        if node.properties:
            pending.extend(node.properties.values())
        for group in (node.all_of, node.any_of, node.one_of):
            if group:
                pending.extend(group)
    return found


def dangling_references(schemas: dict[str, SchemaNode]) -> dict[str, set[str]]:
    """Map each root schema name to the referenced names that do not exist."""
    dangling = {}
    for name, schema in schemas.items():
        missing = referenced_names(schema) - schemas.keys()
        if missing:
            dangling[name] = missing
    return dangling
