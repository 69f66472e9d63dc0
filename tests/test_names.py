import pytest

from api_catalog.parser.names import ref_name, synthesize_schema_name


class TestRefName:
    def test_last_segment(self):
        assert ref_name("#/components/schemas/User") == "User"

    def test_bare_name(self):
        assert ref_name("User") == "User"


class TestSynthesizeSchemaName:
    @pytest.mark.parametrize(
        "operation_id, expected",
        [
            ("_api_v1_list_users", "ListUsersRequest"),
            ("_api_get_user", "GetUserRequest"),
            ("create_user", "CreateUserRequest"),
            ("getUser", "GetuserRequest"),
        ],
    )
    def test_request_names(self, operation_id, expected):
        assert synthesize_schema_name(operation_id, "/users", "POST") == expected

    def test_response_name_includes_status(self):
        name = synthesize_schema_name("_api_v1_get_user", "/users/{id}", "GET", is_response=True, status_code="404")
        assert name == "GetUser404Response"

    def test_status_ignored_for_requests(self):
        assert synthesize_schema_name("get_user", "/u", "GET", status_code="200") == "GetUserRequest"

    def test_fragments_removed_anywhere(self):
        assert synthesize_schema_name("list_users_api_v1_", "/users", "GET") == "ListUsersRequest"

    def test_missing_operation_id(self):
        assert synthesize_schema_name(None, "/users", "GET") == "Request"
        assert synthesize_schema_name(None, "/users", "GET", is_response=True, status_code="200") == "200Response"

    def test_deterministic(self):
        first = synthesize_schema_name("get_user", "/a", "GET", True, "200")
        second = synthesize_schema_name("get_user", "/b", "DELETE", True, "200")
        assert first == second
