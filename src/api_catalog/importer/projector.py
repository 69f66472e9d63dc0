"""Project OpenAPI schema nodes onto catalog schema and attribute rows.

Nested inline schemas are not hoisted into separate named schemas: a
property becomes one attribute whose ``type`` names what it holds.
"""

from pydantic import BaseModel

from api_catalog.catalog.models import CatalogAttribute
from api_catalog.parser.document import SchemaNode
from api_catalog.parser.names import ref_name

ENUM_DEFAULT_SEPARATOR = " ||"


class SchemaProjection(BaseModel):
    """A schema row and its attribute rows, not yet stored."""

    name: str
    schema_type: str = "object"
    title: str | None = None
    description: str | None = None
    is_reference: bool = False
    referenced_model_name: str | None = None
    element_type: str | None = None
    element_is_reference: bool = False
    attributes: list[CatalogAttribute] = []

    def schema_fields(self) -> dict:
        """Column values for the schema row itself."""
        return self.model_dump(exclude={"name", "attributes"})


def resolve_type(node: SchemaNode) -> str:
    """Type name of a nested property or item schema.

    Priority: referenced schema name, then ``enum``, then the declared
    type, then ``object``.
    """
    if node.ref is not None:
        return ref_name(node.ref)
    if node.enum:
        return "enum"
    if node.type:
        return node.type
    return "object"


def project_schema(name: str, node: SchemaNode) -> SchemaProjection:
    """Convert one named root schema into catalog rows."""
    if node.ref is not None:
        return SchemaProjection(
            name=name,
            schema_type="reference",
            is_reference=True,
            referenced_model_name=ref_name(node.ref),
        )

    projection = SchemaProjection(
        name=name,
        schema_type=node.type or "object",
        title=node.title,
        description=node.description,
    )

    if node.properties:
        required = set(node.required or [])
        projection.attributes = [
            _project_property(prop_name, prop, prop_name in required)
            for prop_name, prop in node.properties.items()
        ]
    elif node.enum:
        projection.schema_type = "enum"
        projection.element_type = node.type
        projection.attributes = [_enum_attribute(node)]
    elif node.type == "array":
        projection.element_type, projection.element_is_reference = _element_of(node.items)

    return projection


def _project_property(name: str, prop: SchemaNode, required: bool) -> CatalogAttribute:
    attr_type = resolve_type(prop)
    element_type, element_is_reference = None, False
    if prop.ref is not None:
        element_type, element_is_reference = ref_name(prop.ref), True
    elif attr_type == "array":
        element_type, element_is_reference = _element_of(prop.items)
    elif attr_type == "enum":
        element_type = prop.type

    return CatalogAttribute(
        name=name,
        type=attr_type,
        nullable=bool(prop.nullable),
        required=required,
        description=prop.description or "",
        default_value=prop.default.to_storage() if prop.default is not None else None,
        format=prop.format,
        enum_values=prop.enum or [],
        element_type=element_type,
        element_is_reference=element_is_reference,
    )


def _enum_attribute(node: SchemaNode) -> CatalogAttribute:
    # With no declared default the joined values stand in for one
    if node.default is not None:
        default_value = node.default.to_storage()
    else:
        default_value = ENUM_DEFAULT_SEPARATOR.join(node.enum)
    return CatalogAttribute(
        name=node.title or "unknown",
        type="enum",
        nullable=bool(node.nullable),
        required=True,
        description=node.description or "",
        default_value=default_value,
        format=node.format,
        enum_values=list(node.enum),
        element_type=node.type,
    )


def _element_of(items: SchemaNode | None) -> tuple[str | None, bool]:
    if items is None:
        return None, False
    if items.ref is not None:
        return ref_name(items.ref), True
    return items.type, False
