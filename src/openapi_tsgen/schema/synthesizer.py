"""Schema type synthesizer: turns a raw schema node into a SchemaNode.

Dispatch is by keyword, and every keyword combination has exactly one
construction path:

    $ref            -> reference (or an access-mode view of the target)
    const           -> literal
    enum            -> hoisted enum declaration (or a literal union)
    allOf/oneOf/anyOf -> CompositionResolver
    type: [..]      -> union of the listed types
    object keywords -> MapResolver, then dependentRequired, then if/then/else
    array / items   -> array
    primitives      -> primitive

``nullable: true`` becomes a union with ``null``, never a flag.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any

from openapi_tsgen.schema.composition import COMPOSITION_KEYWORDS, CompositionResolver
from openapi_tsgen.schema.errors import NameCollisionError, UnresolvedReferenceError, UnsupportedSchemaConstructError
from openapi_tsgen.schema.maps import MapResolver
from openapi_tsgen.schema.model import (
    BOOLEAN,
    NEVER,
    NULL,
    NUMBER,
    STRING,
    UNKNOWN,
    ArrayNode,
    EnumNode,
    LiteralNode,
    NamedType,
    ObjectNode,
    Property,
    ReferenceNode,
    SchemaNode,
    is_literal,
    make_union,
    with_null,
)
from openapi_tsgen.schema.naming import NameAllocator, enum_members
from openapi_tsgen.schema.resolver import ReferenceIndex, origin_path

logger = logging.getLogger(__name__)

# Access modes: which side of the wire a schema describes.
MODE_DEFAULT = "default"
MODE_INPUT = "input"  # request bodies, parameters: readOnly properties dropped
MODE_OUTPUT = "output"  # responses, headers: writeOnly properties dropped

OBJECT_KEYWORDS = (
    "properties",
    "required",
    "patternProperties",
    "additionalProperties",
    "dependentRequired",
    "dependencies",
    "if",
    "then",
    "else",
)

# Keywords whose values are schemas, walked when looking for readOnly/writeOnly.
SUBSCHEMA_KEYWORDS = ("items", "additionalProperties", "if", "then", "else")
SUBSCHEMA_MAPS = ("properties", "patternProperties")
SUBSCHEMA_LISTS = COMPOSITION_KEYWORDS + ("prefixItems",)

PRIMITIVES = {
    "string": STRING,
    "number": NUMBER,
    "integer": NUMBER,
    "boolean": BOOLEAN,
    "null": NULL,
}


@dataclass(frozen=True)
class Site:
    """Where a schema occurs: its origin path plus what naming needs to know.

    ``owner`` is the nearest enclosing named schema (or operation), ``path``
    the property names from the owner down to this schema, ``tags`` the
    branch tags collected from enclosing compositions.
    """

    origin: str
    owner: str
    mode: str = MODE_DEFAULT
    path: tuple[str, ...] = ()
    tags: str = ""

    def prop(self, name: str) -> "Site":
        return replace(self, origin=self.origin + "." + origin_path("properties", name), path=self.path + (name,))

    def at(self, *segments) -> "Site":
        return replace(self, origin=self.origin + "." + origin_path(*segments))

    def prop_path(self, name: str) -> "Site":
        """Extend the naming path only (origin unchanged)."""
        return replace(self, path=self.path + (name,))

    def branch(self, keyword: str, index: int, tag: str = "") -> "Site":
        return replace(self, origin=self.origin + "." + origin_path(keyword, index), tags=self.tags + tag)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SchemaSynthesizer:
    """Walks raw schemas of one document, hoisting enums as it goes."""

    def __init__(self, index: ReferenceIndex, names: NameAllocator):
        self.index = index
        self.names = names
        self.enums: dict[str, NamedType] = {}
        self.compositions = CompositionResolver(self)
        self.maps = MapResolver(self)
        self._view_cache: dict[tuple[str, str], bool] = {}

    # -- entry points ---------------------------------------------------------

    def component(self, name: str) -> SchemaNode:
        """Synthesize ``components.schemas.<name>`` as its own declaration body."""
        raw = self.index.get("schemas", name)
        return self.synthesize(raw, Site(origin=origin_path("components", "schemas", name), owner=name))

    def synthesize(self, raw: Any, site: Site) -> SchemaNode:
        if raw is None or raw is True:
            return UNKNOWN
        if raw is False:
            return NEVER
        if not isinstance(raw, dict):
            raise UnsupportedSchemaConstructError(
                "schema", site.origin, f"expected an object or boolean, got {type(raw).__name__}"
            )
        if "$ref" in raw:
            return self._reference(raw["$ref"], site)

        node = self._dispatch(raw, site)
        if raw.get("nullable") is True:
            node = with_null(node)
        return node

    def properties(self, raw: dict, site: Site) -> ObjectNode:
        """Explicit properties of an object schema, filtered for the access mode.

        Names listed in ``required`` without a property schema become
        required ``unknown`` fields.
        """
        props = raw.get("properties") or {}
        if not isinstance(props, dict):
            raise UnsupportedSchemaConstructError("properties", site.origin, "must be a mapping")
        required = raw.get("required") or []
        if not isinstance(required, list):
            raise UnsupportedSchemaConstructError("required", site.origin, "must be a list of names")
        required_names = {r for r in required if isinstance(r, str)}

        fields = []
        for name in sorted(props):
            sub = props[name]
            if not self._visible(sub, site.mode):
                continue
            node = self.synthesize(sub, site.prop(name))
            fields.append(Property(name=name, node=node, required=name in required_names))
        for name in sorted(required_names - props.keys()):
            fields.append(Property(name=name, node=UNKNOWN, required=True))
        return ObjectNode(properties=tuple(fields))

    def object_shape(self, raw: dict, site: Site) -> SchemaNode:
        fields = self.properties(raw, site)
        shape = self.maps.resolve(raw, fields, site)
        shape = self.compositions.dependent_required(raw, fields, shape, site)
        if "if" in raw or "then" in raw or "else" in raw:
            shape = self.compositions.conditional(raw, fields, shape, site)
        return shape

    # -- dispatch -------------------------------------------------------------

    def _dispatch(self, raw: dict, site: Site) -> SchemaNode:
        if "const" in raw:
            return self._const(raw["const"], site)
        if "enum" in raw:
            return self._enum(raw["enum"], site)
        if any(k in raw for k in COMPOSITION_KEYWORDS):
            return self.compositions.resolve(raw, site)

        declared = raw.get("type")
        if isinstance(declared, list):
            if not declared:
                raise UnsupportedSchemaConstructError("type", site.origin, "empty type list")
            return make_union([self._typed(raw, t, site) for t in declared])
        return self._typed(raw, declared, site)

    def _typed(self, raw: dict, declared: Any, site: Site) -> SchemaNode:
        if declared is None:
            if any(k in raw for k in OBJECT_KEYWORDS):
                declared = "object"
            elif "items" in raw:
                declared = "array"
            else:
                return UNKNOWN

        if declared in PRIMITIVES:
            return PRIMITIVES[declared]
        if declared == "array":
            items = raw.get("items")
            if items is None:
                return ArrayNode(items=UNKNOWN)
            return ArrayNode(items=self.synthesize(items, site.at("items")))
        if declared == "object":
            return self.object_shape(raw, site)
        raise UnsupportedSchemaConstructError("type", site.origin, repr(declared))

    def _const(self, value: Any, site: Site) -> SchemaNode:
        if not is_literal(value):
            raise UnsupportedSchemaConstructError("const", site.origin, "only scalar constants have a literal type")
        return LiteralNode(value=value)

    def _enum(self, values: Any, site: Site) -> SchemaNode:
        if not isinstance(values, list) or not values:
            raise UnsupportedSchemaConstructError("enum", site.origin, "must be a non-empty list")
        if not all(is_literal(v) for v in values):
            raise UnsupportedSchemaConstructError("enum", site.origin, "only scalar values have a literal type")

        present = [v for v in values if v is not None]
        if not present:
            return NULL

        if all(isinstance(v, str) for v in present) or all(_is_number(v) for v in present):
            name = self.names.allocate_enum(site.origin, site.owner, site.path, present, site.tags)
            body = EnumNode(members=enum_members(present))
            existing = self.enums.get(name)
            if existing is None:
                self.enums[name] = NamedType(name=name, body=body, origin=site.origin)
                logger.debug("hoisted enum %s from %s", name, site.origin)
            elif existing.body != body:
                raise NameCollisionError(name, site.origin, existing.origin)
            node = ReferenceNode(section="enums", name=name)
        else:
            # mixed or boolean values: no enum declaration can hold them
            node = make_union([LiteralNode(value=v) for v in present])

        if len(present) != len(values):
            node = with_null(node)
        return node

    # -- references and access-mode views ---------------------------------------

    def _reference(self, ref: Any, site: Site) -> SchemaNode:
        node = self.index.reference(ref, site.origin)
        if node.section != "schemas":
            raise UnresolvedReferenceError(ref, site.origin, "a schema must point into components.schemas")
        if site.mode == MODE_DEFAULT or self.index.in_progress(ref) or not self._needs_view(ref, site):
            return node

        # The target hides properties on this side of the wire: expand a filtered copy.
        with self.index.resolving(ref):
            target_site = Site(origin=origin_path("components", "schemas", node.name), owner=node.name, mode=site.mode)
            return self.synthesize(self.index.get("schemas", node.name), target_site)

    def _visible(self, sub: Any, mode: str) -> bool:
        if not isinstance(sub, dict):
            return True
        if mode == MODE_INPUT:
            return sub.get("readOnly") is not True
        if mode == MODE_OUTPUT:
            return sub.get("writeOnly") is not True
        return True

    def _needs_view(self, ref: str, site: Site) -> bool:
        key = (ref, site.mode)
        if key not in self._view_cache:
            flag = "readOnly" if site.mode == MODE_INPUT else "writeOnly"
            _, _, target = self.index.lookup(ref, site.origin, "schemas")
            self._view_cache[key] = self._declares(target, flag, {ref}, site.origin)
        return self._view_cache[key]

    def _declares(self, raw: Any, flag: str, seen: set[str], origin: str) -> bool:
        """Whether a schema (following refs) has a property marked ``flag``."""
        if not isinstance(raw, dict):
            return False
        ref = raw.get("$ref")
        if isinstance(ref, str):
            if ref in seen:
                return False
            seen.add(ref)
            _, _, target = self.index.lookup(ref, origin, "schemas")
            return self._declares(target, flag, seen, origin)

        subschemas = [raw.get(k) for k in SUBSCHEMA_KEYWORDS]
        for key in SUBSCHEMA_MAPS:
            entries = raw.get(key)
            if isinstance(entries, dict):
                if key == "properties" and any(isinstance(p, dict) and p.get(flag) is True for p in entries.values()):
                    return True
                subschemas.extend(entries.values())
        for key in SUBSCHEMA_LISTS:
            branches = raw.get(key)
            if isinstance(branches, list):
                subschemas.extend(branches)
        return any(self._declares(sub, flag, seen, origin) for sub in subschemas)
