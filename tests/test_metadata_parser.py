from openapi_assembler.parser.base import AuthRequired, DefaultErrorType, ExplicitType, PlainText
from openapi_assembler.parser.metadata import (
    decode_handler,
    decode_parameter_items,
    decode_raw_field,
    decode_request_body_items,
    decode_response_items,
    decode_tag_items,
    parse_description_metadata,
    parse_parameter,
    parse_parameters,
    parse_request_body,
    parse_response_line,
    parse_responses,
)
from openapi_assembler.registry.base import HandlerRecord


class TestDecodeRawField:
    def test_empty_inputs(self):
        assert decode_raw_field("") == []
        assert decode_raw_field("[]") == []
        assert decode_raw_field(None) == []

    def test_strict_json_array(self):
        assert decode_raw_field('["users", "admin"]') == ["users", "admin"]

    def test_json_keeps_commas_inside_items(self):
        raw = '["id (path): The ID, as an integer", "name (query): Name"]'
        assert decode_raw_field(raw) == ["id (path): The ID, as an integer", "name (query): Name"]

    def test_legacy_split_on_invalid_json(self):
        raw = '["200: OK", "404: Not found",]'
        assert decode_raw_field(raw) == ["200: OK", "404: Not found"]

    def test_legacy_split_without_quotes(self):
        assert decode_raw_field("[users, admin]") == ["users", "admin"]

    def test_deeply_nested_field_falls_back_to_legacy_split(self):
        raw = "[" + "[" * 100000 + "]" * 100000 + "]"
        items = decode_raw_field(raw)
        assert len(items) == 1
        assert items[0].startswith("[[[")

    def test_non_string_items_are_stringified(self):
        assert decode_raw_field("[1, true]") == ["1", "true"]


class TestDecodeItems:
    def test_auth_sentinel_becomes_auth_item(self):
        items = decode_parameter_items('["__REQUIRES_AUTH__", "id (path): ID"]')
        assert isinstance(items[0], AuthRequired)
        assert items[1] == PlainText(text="id (path): ID")

    def test_error_type_sentinel_strips_module_path(self):
        items = decode_response_items('["200: OK", "ErrorType: crate::errors::AppError"]')
        assert items[1] == DefaultErrorType(name="AppError")

    def test_explicit_type_only_from_first_item(self):
        items = decode_request_body_items('["Type: CreateUser", "Type: Other"]')
        assert items[0] == ExplicitType(name="CreateUser")
        assert items[1] == PlainText(text="Type: Other")

    def test_tags_are_verbatim(self):
        assert [t.value for t in decode_tag_items('["users", "admin"]')] == ["users", "admin"]

    def test_decode_handler(self):
        record = HandlerRecord(
            function_name="delete_user",
            summary="Delete",
            parameters='["id (path): ID", "__REQUIRES_AUTH__"]',
            responses='["204: Deleted", "ErrorType: AppError", "ErrorType: DeleteUserError"]',
            request_body='["Type: DeleteUserRequest"]',
        )
        metadata = decode_handler(record)
        assert metadata.requires_auth is True
        assert metadata.default_error_type == "DeleteUserError"
        assert metadata.explicit_type == "DeleteUserRequest"
        assert metadata.has_request_body is True
        assert metadata.raw_request_body == '["Type: DeleteUserRequest"]'

    def test_decode_handler_without_sentinels(self):
        metadata = decode_handler(HandlerRecord(function_name="ping"))
        assert metadata.requires_auth is False
        assert metadata.default_error_type is None
        assert metadata.explicit_type is None
        assert metadata.has_request_body is False


class TestParameterGrammar:
    def test_path_parameter_is_required(self):
        params = parse_parameters(decode_parameter_items('["id (path): The user ID"]'))
        assert len(params) == 1
        assert params[0].name == "id"
        assert params[0].location == "path"
        assert params[0].description == "The user ID"
        assert params[0].required is True

    def test_query_parameter_is_optional(self):
        params = parse_parameters(decode_parameter_items('["filter (query): Filter results"]'))
        assert params[0].name == "filter"
        assert params[0].location == "query"
        assert params[0].required is False

    def test_malformed_item_falls_back(self):
        params = parse_parameters(decode_parameter_items('["no grammar here"]'))
        assert len(params) == 1
        assert params[0].name == "unknown"
        assert params[0].location == "query"
        assert params[0].description == "no grammar here"
        assert params[0].required is False

    def test_missing_parentheses_falls_back(self):
        param = parse_parameter("id: The ID")
        assert param.name == "unknown"
        assert param.description == "id: The ID"

    def test_auth_sentinel_not_a_parameter(self):
        params = parse_parameters(decode_parameter_items('["__REQUIRES_AUTH__"]'))
        assert params == []

    def test_example_and_default_metadata(self):
        param = parse_parameter("limit (query): Page size [example: 50, default: 20]")
        assert param.description == "Page size"
        assert param.example == "50"
        assert param.default == "20"
        assert param.schema_dict() == {"type": "string", "default": "20", "example": "50"}

    def test_default_ignored_for_path_parameters(self):
        param = parse_parameter("id (path): The ID [example: 7, default: 1]")
        assert param.example == "7"
        assert param.default is None
        assert param.schema_dict() == {"type": "string", "example": "7"}

    def test_unknown_metadata_keys_ignored(self):
        description, example, default = parse_description_metadata("Sort order [format: asc, example: desc]")
        assert description == "Sort order"
        assert example == "desc"
        assert default is None

    def test_description_without_metadata(self):
        assert parse_description_metadata("Plain text") == ("Plain text", None, None)

    def test_unclosed_bracket_kept_as_text(self):
        assert parse_description_metadata("Odd [text") == ("Odd [text", None, None)

    def test_header_parameter(self):
        param = parse_parameter("X-Request-Id (header): Correlation ID")
        assert param.location == "header"
        assert param.required is False


class TestResponseGrammar:
    def test_valid_response(self):
        response = parse_response_line("404: Not found")
        assert response.status_code == "404"
        assert response.description == "Not found"

    def test_invalid_codes_dropped(self):
        assert parse_response_line("20: Too short") is None
        assert parse_response_line("2000: Too long") is None
        assert parse_response_line("OK: Not a code") is None
        assert parse_response_line("no colon at all") is None

    def test_error_type_not_a_response(self):
        responses = parse_responses(decode_response_items('["200: Success", "ErrorType: AppError"]'))
        assert [r.status_code for r in responses] == ["200"]


class TestRequestBodyGrammar:
    def test_empty_field_gives_generic_body(self):
        body = parse_request_body([])
        assert body.required is True
        assert body.content_type == "application/json"
        assert body.schema_dict() == {"type": "object"}

    def test_inline_fields_and_description(self):
        items = decode_request_body_items(
            '["Content-Type: application/json", "User to create", '
            '"- name (string): Full name", "- age (integer): Age in years"]'
        )
        body = parse_request_body(items)
        assert body.description == "User to create"
        assert body.schema_dict() == {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Full name"},
                "age": {"type": "integer", "description": "Age in years"},
            },
        }

    def test_content_type_line_sets_mime(self):
        body = parse_request_body(decode_request_body_items('["Content-Type: multipart/form-data"]'))
        assert body.content_type == "multipart/form-data"
        assert body.description == "Request body"

    def test_malformed_field_line_ignored(self):
        body = parse_request_body(decode_request_body_items('["- broken field"]'))
        assert body.properties == {}
