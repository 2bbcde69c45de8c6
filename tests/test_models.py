import pytest
from pydantic import ValidationError

from openapi_tsgen.schema.model import (
    NEVER,
    NULL,
    NUMBER,
    STRING,
    UNKNOWN,
    IntersectionNode,
    LiteralNode,
    ObjectNode,
    Property,
    ReferenceNode,
    UnionNode,
    format_number,
    make_intersection,
    make_union,
    with_null,
)


class TestUnion:
    def test_flattens_and_dedupes(self):
        inner = UnionNode(members=(STRING, NUMBER))
        assert make_union([inner, STRING, NULL]) == UnionNode(members=(STRING, NUMBER, NULL))

    def test_single_member_collapses(self):
        assert make_union([STRING, STRING]) == STRING

    def test_never_dropped_and_empty_is_never(self):
        assert make_union([NEVER, STRING]) == STRING
        assert make_union([]) == NEVER

    def test_unknown_absorbs(self):
        assert make_union([STRING, UNKNOWN]) == UNKNOWN


class TestIntersection:
    def test_unknown_dropped_and_empty_is_unknown(self):
        assert make_intersection([UNKNOWN, STRING]) == STRING
        assert make_intersection([]) == UNKNOWN

    def test_never_absorbs(self):
        assert make_intersection([STRING, NEVER]) == NEVER

    def test_keeps_order(self):
        ref = ReferenceNode(section="schemas", name="Base")
        obj = ObjectNode(properties=(Property(name="id", node=STRING, required=True),))
        assert make_intersection([ref, obj]) == IntersectionNode(members=(ref, obj))


class TestHelpers:
    def test_format_number(self):
        assert format_number(2.0) == "2"
        assert format_number(2.5) == "2.5"
        assert format_number(-3) == "-3"

    def test_with_null(self):
        assert with_null(STRING) == UnionNode(members=(STRING, NULL))
        assert with_null(NULL) == NULL

    def test_nodes_are_frozen(self):
        node = LiteralNode(value="a")
        with pytest.raises(ValidationError):
            node.value = "b"

    def test_structurally_equal_nodes_hash_equal(self):
        a = ObjectNode(properties=(Property(name="id", node=STRING),))
        b = ObjectNode(properties=(Property(name="id", node=STRING),))
        assert a == b
        assert hash(a) == hash(b)

    def test_object_get(self):
        obj = ObjectNode(properties=(Property(name="id", node=STRING, required=True),))
        assert obj.get("id").required is True
        assert obj.get("missing") is None
