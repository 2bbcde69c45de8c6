"""Composition resolver: allOf / oneOf / anyOf, if/then/else and dependentRequired.

All results are plain type algebra over SchemaNode: ``allOf`` is an
intersection, ``oneOf``/``anyOf`` a union. Validation-only keywords
(``not``, ``minLength``, ...) have no type and are left out.
"""

import logging
import string
from typing import Any

from openapi_tsgen.schema.errors import UnsupportedSchemaConstructError
from openapi_tsgen.schema.model import (
    NEVER,
    UNKNOWN,
    LiteralNode,
    ObjectNode,
    Property,
    SchemaNode,
    UnionNode,
    is_literal,
    make_intersection,
    make_union,
)

logger = logging.getLogger(__name__)

COMPOSITION_KEYWORDS = ("allOf", "oneOf", "anyOf")
# Keywords that belong to the composition itself, not to the shape beside it.
COMPOSITION_ONLY = COMPOSITION_KEYWORDS + ("discriminator", "nullable")
SHAPE_KEYWORDS = (
    "properties",
    "required",
    "patternProperties",
    "additionalProperties",
    "dependentRequired",
    "if",
    "items",
    "const",
    "enum",
)


def branch_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA, ..."""
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = string.ascii_uppercase[rem] + letters
    return letters


def literal_set(raw: Any) -> list | None:
    """Literal values a ``const``/``enum`` schema allows, or None if unconstrained."""
    if not isinstance(raw, dict):
        return None
    if "const" in raw and is_literal(raw["const"]):
        return [raw["const"]]
    values = raw.get("enum")
    if isinstance(values, list) and values and all(is_literal(v) for v in values):
        return list(values)
    return None


def member_tag(raw: Any, prop: str) -> Any:
    """The single literal a member schema pins the discriminator property to.

    Inline allOf branches of the member are searched too.
    """
    if not isinstance(raw, dict):
        return None
    props = raw.get("properties")
    if isinstance(props, dict) and prop in props:
        values = literal_set(props[prop])
        if values is not None and len(values) == 1 and values[0] is not None:
            return values[0]
    for branch in raw.get("allOf") or []:
        if isinstance(branch, dict) and "$ref" not in branch:
            tag = member_tag(branch, prop)
            if tag is not None:
                return tag
    return None


def _literal_key(value: Any) -> tuple:
    # keep True apart from 1
    return (type(value) is bool, value)


def _enum_paths(raw: Any, path: tuple[str, ...] = ()) -> set[tuple[str, ...]]:
    """Property paths of the inline enums inside a schema, not crossing $refs."""
    if not isinstance(raw, dict) or "$ref" in raw:
        return set()
    found = set()
    if "enum" in raw:
        found.add(path)
    props = raw.get("properties")
    if isinstance(props, dict):
        for name, sub in props.items():
            found |= _enum_paths(sub, path + (name,))
    for key in ("items", "additionalProperties", "if", "then", "else"):
        found |= _enum_paths(raw.get(key), path)
    patterns = raw.get("patternProperties")
    if isinstance(patterns, dict):
        for sub in patterns.values():
            found |= _enum_paths(sub, path)
    for key in COMPOSITION_KEYWORDS:
        branches = raw.get(key)
        if isinstance(branches, list):
            for sub in branches:
                found |= _enum_paths(sub, path)
    return found


def branch_tags(branches: list) -> list[str]:
    """Per-branch tags: a branch gets its letter when an enum in it would share
    its base name with an enum in a sibling branch."""
    paths = [_enum_paths(b) for b in branches]
    tags = []
    for i, own in enumerate(paths):
        others = set().union(*(p for j, p in enumerate(paths) if j != i))
        tags.append(branch_letter(i) if own & others else "")
    return tags


def merge_objects(objects: list[ObjectNode]) -> ObjectNode:
    """Merge object shapes: a property is required if any shape requires it,
    and its type is the intersection of the distinct types declared for it."""
    nodes: dict[str, list] = {}
    required: dict[str, bool] = {}
    for obj in objects:
        for prop in obj.properties:
            nodes.setdefault(prop.name, []).append(prop.node)
            required[prop.name] = required.get(prop.name, False) or prop.required
    return ObjectNode(
        properties=tuple(
            Property(name=name, node=make_intersection(nodes[name]), required=required[name])
            for name in sorted(nodes)
        )
    )


def _field_type(fields: ObjectNode, name: str) -> SchemaNode:
    prop = fields.get(name)
    return prop.node if prop is not None else UNKNOWN


def replace_property(obj: ObjectNode, name: str, node: SchemaNode, required: bool = True) -> ObjectNode:
    props = [p for p in obj.properties if p.name != name]
    props.append(Property(name=name, node=node, required=required))
    return ObjectNode(properties=tuple(sorted(props, key=lambda p: p.name)))


class CompositionResolver:
    """Composition keywords of one document; calls back into the synthesizer for branches."""

    def __init__(self, synthesizer):
        self.s = synthesizer

    def resolve(self, raw: dict, site) -> SchemaNode:
        sibling = {k: v for k, v in raw.items() if k not in COMPOSITION_ONLY}
        base = self._sibling_shape(sibling, site)

        parts = []
        if "allOf" in raw:
            parts.append(self.all_of(self._branches(raw, "allOf", site), base, site))
            base = None
        for keyword in ("oneOf", "anyOf"):
            if keyword in raw:
                branches = self._branches(raw, keyword, site)
                parts.append(self.one_of(keyword, branches, raw.get("discriminator"), base, site))
                base = None
        return make_intersection(parts)

    def _branches(self, raw: dict, keyword: str, site) -> list:
        branches = raw[keyword]
        if not isinstance(branches, list) or not branches:
            raise UnsupportedSchemaConstructError(keyword, site.origin, "must be a non-empty list")
        return branches

    def _sibling_shape(self, sibling: dict, site) -> SchemaNode | None:
        declared = sibling.get("type")
        if not any(k in sibling for k in SHAPE_KEYWORDS) and declared in (None, "object"):
            return None
        return self.s.synthesize(sibling, site)

    # -- allOf ----------------------------------------------------------------

    def all_of(self, branches: list, base: SchemaNode | None, site) -> SchemaNode:
        self._check_literal_conflicts(branches, site)
        tags = branch_tags(branches)
        members = [
            self.s.synthesize(b, site.branch("allOf", i, tags[i])) for i, b in enumerate(branches)
        ]
        if base is not None:
            members.append(base)

        objects = [m for m in members if isinstance(m, ObjectNode)]
        if len(objects) < 2:
            return make_intersection(members)
        merged = merge_objects(objects)
        out = []
        for m in members:
            if isinstance(m, ObjectNode):
                if merged is not None:
                    out.append(merged)
                    merged = None
            else:
                out.append(m)
        return make_intersection(out)

    def _branch_properties(self, branch: Any, site) -> dict:
        if isinstance(branch, dict) and "$ref" in branch:
            _, _, branch = self.s.index.lookup(branch["$ref"], site.origin, "schemas")
        if not isinstance(branch, dict):
            return {}
        props = branch.get("properties")
        return props if isinstance(props, dict) else {}

    def _property_literals(self, prop: Any, site) -> list | None:
        if isinstance(prop, dict) and "$ref" in prop:
            _, _, prop = self.s.index.lookup(prop["$ref"], site.origin, "schemas")
        return literal_set(prop)

    def _check_literal_conflicts(self, branches: list, site) -> None:
        seen: dict[str, tuple[int, set]] = {}
        for i, branch in enumerate(branches):
            for name, prop in sorted(self._branch_properties(branch, site).items()):
                values = self._property_literals(prop, site)
                if values is None:
                    continue
                keys = {_literal_key(v) for v in values}
                if name in seen:
                    first, other = seen[name]
                    if not keys & other:
                        raise UnsupportedSchemaConstructError(
                            "allOf",
                            site.origin,
                            f"branches {first} and {i} constrain property {name!r} to disjoint literals",
                        )
                    seen[name] = (first, keys & other)
                else:
                    seen[name] = (i, keys)

    # -- oneOf / anyOf ----------------------------------------------------------

    def one_of(self, keyword: str, branches: list, discriminator: Any, base: SchemaNode | None, site) -> SchemaNode:
        if discriminator is not None:
            return self._discriminated(keyword, branches, discriminator, base, site)

        tags = branch_tags(branches)
        union = make_union(
            self.s.synthesize(b, site.branch(keyword, i, tags[i])) for i, b in enumerate(branches)
        )
        if base is None:
            return union
        return make_intersection([base, union])

    def _discriminated(self, keyword: str, branches: list, discriminator: Any, base, site) -> SchemaNode:
        prop = discriminator.get("propertyName") if isinstance(discriminator, dict) else None
        if not isinstance(prop, str) or not prop:
            raise UnsupportedSchemaConstructError("discriminator", site.origin, "propertyName is required")
        mapping = discriminator.get("mapping") or {}
        by_target = {target: tag for tag, target in sorted(mapping.items())}

        self._log_common_ancestor(branches, site)
        tags = branch_tags(branches)
        members = []
        for i, branch in enumerate(branches):
            branch_site = site.branch(keyword, i, tags[i])
            if isinstance(branch, dict) and "$ref" in branch:
                members.append(self._reference_member(branch["$ref"], prop, by_target, base, branch_site))
            else:
                members.append(self._inline_member(branch, prop, base, branch_site))
        return make_union(members)

    def _reference_member(self, ref: str, prop: str, by_target: dict, base, site) -> SchemaNode:
        node = self.s.index.reference(ref, site.origin, "schemas")
        _, _, target = self.s.index.lookup(ref, site.origin, "schemas")
        tag = by_target.get(ref)
        if tag is None:
            tag = member_tag(target, prop)
        if tag is None:
            tag = node.name
        narrowed = ObjectNode(properties=(Property(name=prop, node=LiteralNode(value=tag), required=True),))
        parts = [node, narrowed] if base is None else [base, node, narrowed]
        return make_intersection(parts)

    def _inline_member(self, raw: Any, prop: str, base, site) -> SchemaNode:
        tag = member_tag(raw, prop)
        if tag is None:
            raise UnsupportedSchemaConstructError(
                "discriminator", site.origin, f"member has no literal value for {prop!r}"
            )
        # the discriminator property is re-emitted as a literal, so its own schema is not synthesized
        trimmed = dict(raw)
        trimmed["properties"] = {k: v for k, v in (raw.get("properties") or {}).items() if k != prop}
        node = self.s.synthesize(trimmed, site)
        literal = LiteralNode(value=tag)

        objects = [n for n in (base, node) if isinstance(n, ObjectNode)]
        others = [n for n in (base, node) if n is not None and not isinstance(n, ObjectNode)]
        shape = merge_objects(objects) if objects else ObjectNode()
        return make_intersection([replace_property(shape, prop, literal)] + others)

    def _log_common_ancestor(self, branches: list, site) -> None:
        """Report an allOf parent shared by every referenced member.

        Each member reference already contains the parent, so it is not
        intersected again.
        """
        parents = None
        for branch in branches:
            if not (isinstance(branch, dict) and "$ref" in branch):
                return
            _, _, target = self.s.index.lookup(branch["$ref"], site.origin, "schemas")
            refs = {
                b["$ref"] for b in (target.get("allOf") or []) if isinstance(b, dict) and "$ref" in b
            } if isinstance(target, dict) else set()
            parents = refs if parents is None else parents & refs
        if parents:
            logger.debug("discriminated union at %s shares %s", site.origin, ", ".join(sorted(parents)))

    # -- if / then / else -------------------------------------------------------

    def conditional(self, raw: dict, fields: ObjectNode, shape: SchemaNode, site) -> SchemaNode:
        """Compile if/then/else into a union of the cases it implies.

        Only conditions that constrain exactly one property to literals are
        representable; the property's literals narrow each case.
        """
        condition = raw.get("if")
        if condition is None:
            # then/else without if never apply
            return shape
        prop, values = self._condition(condition, site)
        declared = literal_set((raw.get("properties") or {}).get(prop))
        base_required = fields.get(prop) is not None and fields.get(prop).required
        required = base_required or prop in (condition.get("required") or [])

        then_fields = self._consequence(raw.get("then"), fields, site.at("then"))
        narrowed = ObjectNode(
            properties=(Property(name=prop, node=make_union(LiteralNode(value=v) for v in values), required=required),)
        )
        first = make_intersection([shape, narrowed] + ([then_fields] if then_fields is not None else []))

        keys = {_literal_key(v) for v in values}
        complement = [v for v in declared or [] if _literal_key(v) not in keys]
        else_fields = self._consequence(raw.get("else"), fields, site.at("else"))
        if else_fields is None and not complement:
            # no complementary case to describe
            return first

        parts = [shape]
        if complement:
            parts.append(
                ObjectNode(
                    properties=(
                        Property(
                            name=prop,
                            node=make_union(LiteralNode(value=v) for v in complement),
                            required=required,
                        ),
                    )
                )
            )
        if else_fields is not None:
            parts.append(else_fields)
        second = make_intersection(parts)
        return UnionNode(members=(first, second)) if first != second else first

    def _condition(self, condition: Any, site) -> tuple[str, list]:
        props = condition.get("properties") if isinstance(condition, dict) else None
        if not isinstance(props, dict) or len(props) != 1:
            raise UnsupportedSchemaConstructError(
                "if", site.origin, "condition must constrain exactly one property"
            )
        (prop, sub), = props.items()
        values = literal_set(sub)
        if values is None:
            raise UnsupportedSchemaConstructError(
                "if", site.origin, f"condition on {prop!r} must be a const or enum"
            )
        return prop, values

    def _consequence(self, raw: Any, fields: ObjectNode, site) -> ObjectNode | None:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise UnsupportedSchemaConstructError("then/else", site.origin, "must be a schema object")
        obj = self.s.properties(raw, site)
        typed = []
        for p in obj.properties:
            declared = fields.get(p.name)
            if p.node == UNKNOWN and declared is not None and p.name not in (raw.get("properties") or {}):
                p = Property(name=p.name, node=declared.node, required=p.required)
            typed.append(p)
        return ObjectNode(properties=tuple(typed))

    # -- dependentRequired --------------------------------------------------------

    def dependent_required(self, raw: dict, fields: ObjectNode, shape: SchemaNode, site) -> SchemaNode:
        """``{trigger: [keys]}`` -> ``{trigger?: never} | {trigger: T; key: T; ...}`` per trigger."""
        deps = raw.get("dependentRequired")
        if deps is None:
            # draft-07 spelling: array-valued entries of `dependencies`
            legacy = raw.get("dependencies")
            if isinstance(legacy, dict):
                deps = {k: v for k, v in legacy.items() if isinstance(v, list)} or None
        if deps is None:
            return shape
        if not isinstance(deps, dict):
            raise UnsupportedSchemaConstructError("dependentRequired", site.origin, "must be a mapping")

        parts = [shape]
        for trigger in sorted(deps):
            keys = deps[trigger]
            if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
                raise UnsupportedSchemaConstructError(
                    "dependentRequired", site.origin, f"{trigger!r} must list property names"
                )
            absent = ObjectNode(properties=(Property(name=trigger, node=NEVER),))
            names = sorted({trigger, *keys})
            present = ObjectNode(
                properties=tuple(
                    Property(name=n, node=_field_type(fields, n), required=True)
                    for n in names
                )
            )
            parts.append(UnionNode(members=(absent, present)))
        return make_intersection(parts)
