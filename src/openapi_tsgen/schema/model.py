"""Type model produced by the synthesizer and consumed by the renderer.

Every node is a frozen pydantic model, so a finished model cannot be mutated
and structurally equal nodes compare (and hash) equal. ``SchemaNode`` is a
discriminated union on ``kind``; consumers match on it exhaustively.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from openapi_tsgen.parser.base import Server

LiteralValue = Union[bool, int, float, str, None]


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class PrimitiveNode(_Node):
    """A built-in type: string / number / boolean / null / unknown / never."""

    kind: Literal["primitive"] = "primitive"
    name: Literal["string", "number", "boolean", "null", "unknown", "never"]


class LiteralNode(_Node):
    kind: Literal["literal"] = "literal"
    value: LiteralValue


class ArrayNode(_Node):
    kind: Literal["array"] = "array"
    items: "SchemaNode"


class Property(_Node):
    name: str
    node: "SchemaNode"
    required: bool = False


class ObjectNode(_Node):
    """A record with named fields. Rendering sorts fields by name."""

    kind: Literal["object"] = "object"
    properties: tuple[Property, ...] = ()

    def get(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


class EnumMember(_Node):
    name: str
    value: Union[int, float, str]


class EnumNode(_Node):
    """Body of an enum declaration. Members keep source declaration order."""

    kind: Literal["enum"] = "enum"
    members: tuple[EnumMember, ...]


class UnionNode(_Node):
    kind: Literal["union"] = "union"
    members: tuple["SchemaNode", ...]


class IntersectionNode(_Node):
    kind: Literal["intersection"] = "intersection"
    members: tuple["SchemaNode", ...]


class KeyDomain(_Node):
    """The set of keys a pattern entry can match.

    ``number`` - numeric strings, ``prefix`` - strings starting with ``text``,
    ``exact`` - exactly ``text``, ``string`` - any string.
    """

    kind: Literal["string", "number", "prefix", "exact"]
    text: str = ""


class MapEntry(_Node):
    pattern: str
    key: KeyDomain
    value: "SchemaNode"


class MapNode(_Node):
    """An indexed type: zero or more pattern entries plus an optional catch-all."""

    kind: Literal["map"] = "map"
    entries: tuple[MapEntry, ...] = ()
    catch_all: Union["SchemaNode", None] = None


class ReferenceNode(_Node):
    """Pointer to a named declaration; never an inlined copy.

    ``section`` is a components section (``schemas``, ``responses``, ...) or
    ``enums`` for a hoisted enum declaration.
    """

    kind: Literal["reference"] = "reference"
    section: str
    name: str


SchemaNode = Annotated[
    Union[
        PrimitiveNode,
        LiteralNode,
        ArrayNode,
        ObjectNode,
        EnumNode,
        UnionNode,
        IntersectionNode,
        MapNode,
        ReferenceNode,
    ],
    Field(discriminator="kind"),
]

for _model in (ArrayNode, Property, ObjectNode, UnionNode, IntersectionNode, MapEntry, MapNode):
    _model.model_rebuild()


STRING = PrimitiveNode(name="string")
NUMBER = PrimitiveNode(name="number")
BOOLEAN = PrimitiveNode(name="boolean")
NULL = PrimitiveNode(name="null")
UNKNOWN = PrimitiveNode(name="unknown")
NEVER = PrimitiveNode(name="never")


def make_union(members) -> SchemaNode:
    """Union of ``members``: nested unions flattened, duplicates and ``never`` dropped.

    ``unknown`` absorbs every other member.
    """
    flat: list = []
    for member in members:
        parts = member.members if isinstance(member, UnionNode) else (member,)
        for part in parts:
            if part == UNKNOWN:
                return UNKNOWN
            if part != NEVER and part not in flat:
                flat.append(part)
    if not flat:
        return NEVER
    if len(flat) == 1:
        return flat[0]
    return UnionNode(members=tuple(flat))


def make_intersection(members) -> SchemaNode:
    """Intersection of ``members``: nested intersections flattened, ``unknown`` dropped.

    ``never`` absorbs every other member.
    """
    flat: list = []
    for member in members:
        parts = member.members if isinstance(member, IntersectionNode) else (member,)
        for part in parts:
            if part == NEVER:
                return NEVER
            if part != UNKNOWN and part not in flat:
                flat.append(part)
    if not flat:
        return UNKNOWN
    if len(flat) == 1:
        return flat[0]
    return IntersectionNode(members=tuple(flat))


def format_number(value: int | float) -> str:
    """Shortest decimal form: 2.0 -> '2', 2.5 -> '2.5', -3 -> '-3'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_literal(value) -> bool:
    """Whether a raw JSON value has a literal type."""
    return value is None or isinstance(value, (bool, int, float, str))


def with_null(node: SchemaNode) -> SchemaNode:
    if node == NULL:
        return node
    return make_union([node, NULL])


class NamedType(_Node):
    """A declaration: unique name, body, and the document location it came from."""

    name: str
    body: SchemaNode
    origin: str


class BoundParameter(_Node):
    name: str
    node: SchemaNode
    required: bool = False


class Operation(_Node):
    """Everything the renderer needs for one path (or webhook) x method."""

    path_params: tuple[BoundParameter, ...] = ()
    query: tuple[BoundParameter, ...] = ()
    headers: tuple[BoundParameter, ...] = ()
    cookies: tuple[BoundParameter, ...] = ()
    request_body: Union[SchemaNode, None] = None
    responses: tuple[tuple[str, SchemaNode], ...] = ()
    security: tuple[dict[str, tuple[str, ...]], ...] = ()
    servers: tuple[Server, ...] = ()


COMPONENT_SECTIONS = ("schemas", "responses", "requestBodies", "parameters", "headers", "securitySchemes")


class TypeModel(_Node):
    """The finished, immutable model of one document."""

    openapi_version: str = ""
    components: dict[str, dict[str, NamedType]] = Field(default_factory=dict)
    enums: dict[str, NamedType] = Field(default_factory=dict)
    routes: dict[str, dict[str, Operation]] = Field(default_factory=dict)
    webhooks: dict[str, dict[str, Operation]] = Field(default_factory=dict)
    servers: tuple[Server, ...] = ()

    def component(self, section: str, name: str) -> NamedType | None:
        return self.components.get(section, {}).get(name)
