import ast
from pathlib import Path

import pytest

from routes_to_openapi.analyzer.base import DeclarationSite, SourceLocation
from routes_to_openapi.analyzer.program import ProgramAnalyzer
from routes_to_openapi.analyzer.routes import RouteExtractor
from routes_to_openapi.errors import SchemaUnsupportedShape
from routes_to_openapi.schema.nodes import (
    AnyNode,
    ArrayNode,
    ObjectNode,
    PrimitiveNode,
    ReferenceNode,
    UnionNode,
    UnknownNode,
)
from routes_to_openapi.schema.registry import SchemaRegistry
from routes_to_openapi.schema.synthesizer import SchemaSynthesizer

MODELS = """
    from dataclasses import dataclass
    from enum import Enum
    from typing import Any, Callable, Generic, Literal, Optional, TypeVar

    T = TypeVar("T")


    class Status(Enum):
        ACTIVE = "active"
        BLOCKED = "blocked"


    @dataclass
    class Address:
        street: str
        city: str


    @dataclass
    class Location:
        street: str
        city: str


    @dataclass
    class Person:
        name: str
        home: Address
        work: Address | None = None
        friends: list["Person"] = None
        status: Status = Status.ACTIVE


    @dataclass
    class Page(Generic[T]):
        items: list[T]


    @dataclass
    class Anything:
        payload: Any
        hook: Callable[[], None]
        mode: Literal["a", 1, True]
        pair: tuple[int, str]
        scores: dict[str, float]
        maybe: Optional[int]
"""


class CountingSynthesizer(SchemaSynthesizer):
    def __init__(self):
        super().__init__()
        self.expanded = []

    def _expand(self, rtype, registry):
        self.expanded.append(rtype)
        return super()._expand(rtype, registry)


@pytest.fixture
def program(write_program):
    project = write_program({
        "app/__init__.py": "",
        "app/models.py": MODELS,
        "app/other.py": "from dataclasses import dataclass\n\n@dataclass\nclass Address:\n    zip: str\n",
    })
    return ProgramAnalyzer.load(project)


def resolve(program, text: str, module: str = "app.models"):
    return program.resolve(DeclarationSite(
        module=module,
        node=ast.parse(text, mode="eval").body,
        location=SourceLocation(path=Path("site.py")),
    ))


class TestNamedTypes:
    def test_named_type_becomes_reference(self, program):
        registry = SchemaRegistry()
        node = SchemaSynthesizer().synthesize(resolve(program, "Address"), registry)
        assert node == ReferenceNode(name="Address")
        schema = registry.schema("Address")
        assert isinstance(schema, ObjectNode)
        assert list(schema.properties) == ["street", "city"]
        assert all(p.required for p in schema.properties.values())

    def test_optional_fields_are_not_required(self, program):
        registry = SchemaRegistry()
        SchemaSynthesizer().synthesize(resolve(program, "Person"), registry)
        person = registry.schema("Person")
        required = {name: prop.required for name, prop in person.properties.items()}
        assert required == {"name": True, "home": True, "work": False, "friends": False, "status": False}

    def test_identical_shapes_stay_separate(self, program):
        registry = SchemaRegistry()
        synth = SchemaSynthesizer()
        synth.synthesize(resolve(program, "Address"), registry)
        synth.synthesize(resolve(program, "Location"), registry)
        assert registry.schema("Address") == registry.schema("Location")
        assert [e.name for e in registry.entries()] == ["Address", "Location"]

    def test_name_collision_uses_qualified_name(self, program):
        registry = SchemaRegistry()
        synth = SchemaSynthesizer()
        synth.synthesize(resolve(program, "Address"), registry)
        node = synth.synthesize(resolve(program, "Address", module="app.other"), registry)
        assert node == ReferenceNode(name="app.other.Address")

    def test_generic_instantiation_name(self, program):
        registry = SchemaRegistry()
        node = SchemaSynthesizer().synthesize(resolve(program, "Page[Address]"), registry)
        assert node == ReferenceNode(name="Page_Address")
        items = registry.schema("Page_Address").properties["items"].schema_
        assert items == ArrayNode(items=ReferenceNode(name="Address"))

    def test_enum(self, program):
        registry = SchemaRegistry()
        SchemaSynthesizer().synthesize(resolve(program, "Status"), registry)
        assert registry.schema("Status") == PrimitiveNode(type="string", enum=("active", "blocked"))


class TestRecursion:
    def test_self_reference_terminates_with_reference(self, program):
        registry = SchemaRegistry()
        node = SchemaSynthesizer().synthesize(resolve(program, "Person"), registry)
        assert node == ReferenceNode(name="Person")
        friends = registry.schema("Person").properties["friends"].schema_
        assert friends == ArrayNode(items=ReferenceNode(name="Person"))

    def test_components_render_cycle_through_ref(self, program):
        registry = SchemaRegistry()
        SchemaSynthesizer().synthesize(resolve(program, "Person"), registry)
        components = registry.components()
        assert components["Person"]["properties"]["friends"] == {
            "type": "array",
            "items": {"$ref": "#/components/schemas/Person"},
        }


class TestMemoization:
    def test_each_distinct_type_expanded_once(self, program):
        registry = SchemaRegistry()
        synth = CountingSynthesizer()
        person = resolve(program, "Person")
        for _ in range(3):
            synth.synthesize(person, registry)
        synth.synthesize(resolve(program, "list[Person]"), registry)
        synth.synthesize(resolve(program, "Address"), registry)

        ids = [id(t) for t in synth.expanded]
        assert len(ids) == len(set(ids))
        texts = {t.text for t in synth.expanded}
        assert {"Person", "Address", "Status", "string", "list[Person]"} <= texts

    def test_repeated_reference_is_not_reexpanded(self, program):
        registry = SchemaRegistry()
        synth = CountingSynthesizer()
        synth.synthesize(resolve(program, "Address"), registry)
        count = len(synth.expanded)
        assert synth.synthesize(resolve(program, "Address"), registry) == ReferenceNode(name="Address")
        assert len(synth.expanded) == count

    def test_fresh_registry_starts_over(self, program):
        synth = CountingSynthesizer()
        synth.synthesize(resolve(program, "Address"), SchemaRegistry())
        first = len(synth.expanded)
        synth.synthesize(resolve(program, "Address"), SchemaRegistry())
        assert len(synth.expanded) == 2 * first


class TestShapes:
    @pytest.fixture
    def anything(self, program):
        registry = SchemaRegistry()
        synth = SchemaSynthesizer()
        synth.synthesize(resolve(program, "Anything"), registry)
        props = registry.schema("Anything").properties
        return synth, {name: prop.schema_ for name, prop in props.items()}

    def test_any(self, anything):
        _, props = anything
        assert props["payload"] == AnyNode()

    def test_unsupported_degrades_to_unknown(self, anything):
        synth, props = anything
        assert props["hook"] == UnknownNode(type_text="Callable[[], None]")
        assert len(synth.warnings) == 1
        assert isinstance(synth.warnings[0], SchemaUnsupportedShape)
        assert synth.warnings[0].type_text == "Callable[[], None]"

    def test_mixed_literal_becomes_union_of_enums(self, anything):
        _, props = anything
        assert props["mode"] == UnionNode(alternatives=(
            PrimitiveNode(type="string", enum=("a",)),
            PrimitiveNode(type="integer", enum=(1,)),
            PrimitiveNode(type="boolean", enum=(True,)),
        ))

    def test_fixed_tuple(self, anything):
        _, props = anything
        assert props["pair"] == ArrayNode(prefix_items=(
            PrimitiveNode(type="integer"),
            PrimitiveNode(type="string"),
        ))

    def test_mapping(self, anything):
        _, props = anything
        assert props["scores"] == ObjectNode(additional=PrimitiveNode(type="number"))

    def test_optional_is_union_with_null(self, anything):
        _, props = anything
        assert props["maybe"] == UnionNode(alternatives=(
            PrimitiveNode(type="integer"),
            PrimitiveNode(type="null"),
        ))


class TestBindSchemas:
    def test_fixture_routes_get_schemas(self):
        fixtures = Path(__file__).parent / "fixtures"
        program = ProgramAnalyzer.load(fixtures / "petstore")
        routes = RouteExtractor().extract(program).routes
        registry = SchemaRegistry()
        SchemaSynthesizer().bind_schemas(routes, registry)

        by_label = {r.label: r for r in routes}
        assert by_label["GET /users/{id}"].request_schema == ReferenceNode(name="UserQuery")
        assert by_label["GET /users/{id}"].response_schema == ReferenceNode(name="User")
        assert by_label["GET /categories"].request_schema is None
        assert by_label["GET /categories"].response_schema == ArrayNode(items=ReferenceNode(name="Category"))
        assert [e.name for e in registry.entries()] == [
            "Category", "NewPet", "Page_Pet", "Pet", "PetFilter", "PetKind", "User", "UserQuery",
        ]
