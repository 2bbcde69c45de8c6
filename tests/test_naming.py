import pytest

from openapi_tsgen.schema.errors import NameCollisionError
from openapi_tsgen.schema.naming import (
    NameAllocator,
    camel_case,
    enum_members,
    member_name,
    value_suffix,
)


class TestWords:
    def test_camel_case_joins_hints(self):
        assert camel_case("Order", "billing_address") == "OrderBillingAddress"

    def test_camel_case_route_owner(self):
        assert camel_case("get", "/items/{id}") == "GetItemsId"

    def test_camel_case_keeps_acronyms(self):
        assert camel_case("HTTPMethod") == "HTTPMethod"

    def test_composition_keywords_dropped(self):
        assert camel_case("Pet", "oneOf", "kind") == "PetKind"

    def test_value_suffix(self):
        assert value_suffix("car") == "Car"
        assert value_suffix(2) == "Value2"
        assert value_suffix(-1.5) == "ValueNeg1_5"


class TestMembers:
    def test_string_members(self):
        assert member_name("in-progress") == "IN_PROGRESS"
        assert member_name("2fa") == "_2FA"
        assert member_name("") == "Empty"

    def test_number_members(self):
        assert member_name(2) == "VALUE_2"
        assert member_name(-1) == "VALUE_NEG_1"
        assert member_name(1.5) == "VALUE_1_5"

    def test_declaration_order_and_repeats(self):
        members = enum_members(["b", "a", "A"])
        assert [m.name for m in members] == ["B", "A", "A_2"]
        assert [m.value for m in members] == ["b", "a", "A"]


class TestNameAllocator:
    def test_base_name(self):
        names = NameAllocator()
        assert names.allocate_enum("components.schemas.Car.properties.kind", "Car", ("kind",), ["car"]) == "CarKindEnum"

    def test_component_enum_keeps_declared_name(self):
        names = NameAllocator()
        assert names.allocate_enum("components.schemas.Status", "Status", (), ["a", "b"]) == "StatusEnum"
        assert names.allocate_enum("components.schemas.ColorEnum", "ColorEnum", (), ["red"]) == "ColorEnum"

    def test_same_origin_same_name(self):
        names = NameAllocator()
        first = names.allocate_enum("components.schemas.Status", "Status", (), ["a"])
        assert names.allocate_enum("components.schemas.Status", "Status", (), ["a"]) == first
        assert names.name_for("components.schemas.Status") == first

    def test_shared_field_names_stay_distinct(self):
        names = NameAllocator()
        car = names.allocate_enum("components.schemas.Car.properties.kind", "Car", ("kind",), ["car"])
        bike = names.allocate_enum("components.schemas.Bike.properties.kind", "Bike", ("kind",), ["bike"])
        assert car != bike
        assert car.startswith("Car") and bike.startswith("Bike")

    def test_single_member_collision_appends_value(self):
        names = NameAllocator()
        names.allocate_enum("components.schemas.CarKind", "CarKind", (), ["x", "y"])
        assert names.allocate_enum("components.schemas.Car.properties.kind", "Car", ("kind",), ["car"]) == "CarKindCarEnum"

    def test_multi_member_collision_appends_ordinal(self):
        names = NameAllocator()
        names.allocate_enum("components.schemas.CarKind", "CarKind", (), ["x", "y"])
        assert names.allocate_enum("components.schemas.Car.properties.kind", "Car", ("kind",), ["a", "b"]) == "CarKindEnum2"
        assert names.allocate_enum("components.responses.Car.properties.kind", "Car", ("kind",), ["c", "d"]) == "CarKindEnum3"

    def test_branch_tags(self):
        names = NameAllocator()
        assert names.allocate_enum("x.anyOf.0", "Mixed", (), ["a"], "A") == "MixedAEnum"
        assert names.allocate_enum("x.anyOf.1", "Mixed", (), ["b"], "B") == "MixedBEnum"

    def test_exhausted_branch_tier_fails(self):
        names = NameAllocator()
        names.allocate_enum("x.anyOf.0", "Mixed", (), ["a"], "A")
        with pytest.raises(NameCollisionError) as exc:
            names.allocate_enum("y.anyOf.0", "Mixed", (), ["b"], "A")
        assert exc.value.existing_origin == "x.anyOf.0"

    def test_exhausted_value_tier_fails(self):
        names = NameAllocator()
        names.allocate_enum("components.schemas.CarKind", "CarKind", (), ["x", "y"])
        names.allocate_enum("components.schemas.Car.properties.kind", "Car", ("kind",), ["car"])
        with pytest.raises(NameCollisionError):
            names.allocate_enum("components.responses.Car.properties.kind", "Car", ("kind",), ["car"])

    def test_allocated_table(self):
        names = NameAllocator()
        names.allocate_enum("components.schemas.Status", "Status", (), ["a"])
        assert names.allocated() == {"StatusEnum": "components.schemas.Status"}
