from pydantic import BaseModel

from openapi_assembler.registry.base import (
    HandlerRecord,
    Registry,
    SchemaRecord,
    register_handler,
    register_schema,
)
from openapi_assembler.registry.routes import MethodRouter, RouteEntry, get, handler_name, post


class TestHandlerRecord:
    def test_create_minimal_record(self):
        record = HandlerRecord(function_name="list_users")
        assert record.key == "list_users"
        assert record.parameters == "[]"
        assert record.summary == ""

    def test_register_handler_encodes_lists(self):
        registry = Registry()
        record = register_handler(
            "get_user",
            summary="Get user",
            parameters=["id (path): The user ID"],
            registry=registry,
        )
        assert record.parameters == '["id (path): The user ID"]'
        assert record.responses == "[]"
        assert len(registry) == 1

    def test_register_handler_keeps_raw_strings(self):
        registry = Registry()
        record = register_handler("h", responses='["200: OK", ', registry=registry)
        assert record.responses == '["200: OK", '


class TestSchemaRecord:
    def test_schema_parses_json(self):
        record = SchemaRecord(type_name="User", json_text='{"type":"object","required":["id"]}')
        assert record.parsed() == {"type": "object", "required": ["id"]}

    def test_unparseable_schema_degrades_to_object(self):
        record = SchemaRecord(type_name="Broken", json_text="{not json")
        assert record.parsed() == {"type": "object"}

    def test_non_object_schema_degrades_to_object(self):
        record = SchemaRecord(type_name="List", json_text="[1, 2]")
        assert record.parsed() == {"type": "object"}

    def test_deeply_nested_schema_degrades_to_object(self):
        deep = '{"type":"object","x":' + "[" * 100000 + "]" * 100000 + "}"
        record = SchemaRecord(type_name="Deep", json_text=deep)
        assert record.parsed() == {"type": "object"}

    def test_nan_and_infinity_degrade_to_object(self):
        for text in ('{"type":"number","maximum":NaN}', '{"minimum":-Infinity}'):
            record = SchemaRecord(type_name="Num", json_text=text)
            assert record.parsed() == {"type": "object"}

    def test_field_names_do_not_shadow_model_api(self):
        for model in (HandlerRecord, SchemaRecord):
            assert not set(model.model_fields) & set(dir(BaseModel))

    def test_register_schema_dumps_compact_json(self):
        registry = Registry()
        record = register_schema("Pet", {"$ref": "#/components/schemas/Owner"}, registry=registry)
        assert record.json_text == '{"$ref":"#/components/schemas/Owner"}'


class TestRegistry:
    def test_preserves_registration_order(self):
        registry = Registry()
        for name in ("B", "A", "C"):
            registry.register(SchemaRecord(type_name=name, json_text="{}"))
        assert [r.type_name for r in registry] == ["B", "A", "C"]

    def test_duplicates_are_kept_and_first_match_wins(self):
        registry = Registry()
        registry.register(SchemaRecord(type_name="User", json_text='{"title":"first"}'))
        registry.register(SchemaRecord(type_name="User", json_text='{"title":"second"}'))
        assert len(registry) == 2
        assert registry.keys() == ["User"]
        assert registry.find("User").parsed()["title"] == "first"

    def test_contains_and_missing_lookup(self):
        registry = Registry([HandlerRecord(function_name="a")])
        assert "a" in registry
        assert "b" not in registry
        assert registry.find("b") is None


class TestRoutes:
    def test_route_entry_default_summary(self):
        entry = RouteEntry(path="/users/:id", method="get", function_name="get_user")
        assert entry.method == "GET"
        assert entry.summary == "GET /users/:id"

    def test_handler_name_from_callable_and_string(self):
        def create_user():
            pass

        assert handler_name(create_user) == "create_user"
        assert handler_name("delete_user") == "delete_user"

    def test_method_router_chaining(self):
        def list_users():
            pass

        def create_user():
            pass

        router = get(list_users).post(create_user)
        entries = router.entries("/users")
        assert [(e.method, e.function_name) for e in entries] == [
            ("GET", "list_users"),
            ("POST", "create_user"),
        ]

    def test_method_router_from_mapping(self):
        router = MethodRouter.from_mapping({"put": "update_user", "delete": "delete_user"})
        assert router.get_handler_name("PUT") == "update_user"
        assert router.get_handler_name("delete") == "delete_user"

    def test_later_handler_replaces_same_method(self):
        router = post("first").post("second")
        assert router.get_handler_name("POST") == "second"
