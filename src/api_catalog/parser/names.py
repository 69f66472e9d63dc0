"""Schema naming helpers: ``$ref`` resolution and synthesized names.

Inline (non-``$ref``) request and response bodies have no author-supplied
name. They are given one derived from the operation id, so that a schema
registered under that name can be linked to the operation.

Known limitation: the synthesized name ignores path and method, so two
operations whose ids reduce to the same words (``_api_v1_get_user`` and
``get_user``) collide.
"""

STRIPPED_OPERATION_FRAGMENTS = ("_api_v1_", "_api_")


def ref_name(ref: str) -> str:
    """Return the last path segment of a ``$ref`` pointer."""
    return ref.split("/")[-1]


def synthesize_schema_name(
    operation_id: str | None,
    path: str,
    method: str,
    is_response: bool = False,
    status_code: str | None = None,
) -> str:
    """Generate a deterministic name for an inline request/response schema.

    >>> synthesize_schema_name("_api_v1_list_users", "/api/v1/users", "GET")
    'ListUsersRequest'
    >>> synthesize_schema_name("getUser", "/users/{id}", "GET", True, "200")
    'Getuser200Response'
    """
    cleaned = operation_id or ""
    for fragment in STRIPPED_OPERATION_FRAGMENTS:
        cleaned = cleaned.replace(fragment, "")
    words = cleaned.replace("_", " ").split()
    base = "".join(word.capitalize() for word in words)

    status = status_code if is_response and status_code is not None else ""
    suffix = "Response" if is_response else "Request"
    return f"{base}{status}{suffix}"
