"""TypeScript renderer: converts a finished TypeModel into declaration-module text.

Pure function of (model, config): the timestamp comes from the config, so
equal inputs always render byte-identical text.
"""

import json

from openapi_tsgen.config import GeneratorConfig
from openapi_tsgen.parser.base import Server
from openapi_tsgen.schema.model import (
    COMPONENT_SECTIONS,
    STRING,
    ArrayNode,
    BoundParameter,
    LiteralNode,
    MapNode,
    NamedType,
    ObjectNode,
    Operation,
    Property,
    SchemaNode,
    TypeModel,
    format_number,
    make_union,
)
from openapi_tsgen.schema.naming import is_identifier

HEADER_START = "/*\n"
HEADER_END = " */\n\n"
INDENT = "  "


def safe_key(key: str) -> str:
    return key if is_identifier(key) else json.dumps(key, ensure_ascii=False)


def render_literal(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return json.dumps(value, ensure_ascii=False)


def render_header(config: GeneratorConfig, openapi_version: str = "") -> str:
    lines = [
        " * @Warning: THIS FILE IS AUTO-GENERATED - DO NOT EDIT",
        " *",
        f" * Generator: {config.label}",
    ]
    if openapi_version:
        lines.append(f" * OpenAPI version: {openapi_version}")
    lines.append(f" * Generated at: {config.timestamp}")
    return HEADER_START + "\n".join(lines) + "\n" + HEADER_END


class TypeScriptRenderer:
    """Renders one TypeModel. Object keys are always emitted in lexicographic order."""

    # -- expressions ------------------------------------------------------------

    def expr(self, node: SchemaNode, indent: str = "") -> str:
        kind = node.kind
        if kind == "primitive":
            return node.name
        if kind == "literal":
            return render_literal(node.value)
        if kind == "array":
            return self.expr(node.items, indent) + "[]"
        if kind == "object":
            return self._object(node.properties, indent)
        if kind == "union":
            return "(" + " | ".join(self.expr(m, indent) for m in node.members) + ")"
        if kind == "intersection":
            return "(" + " & ".join(self.expr(m, indent) for m in node.members) + ")"
        if kind == "map":
            return self._map(node, indent)
        if kind == "reference":
            if node.section == "enums":
                return node.name
            return f'Components["{node.section}"]["{node.name}"]'
        if kind == "enum":
            return "(" + " | ".join(render_literal(m.value) for m in node.members) + ")"
        raise ValueError(f"unknown node kind {kind!r}")

    def _object(self, properties: tuple[Property, ...], indent: str) -> str:
        if not properties:
            return "{}"
        inner = indent + INDENT
        lines = ["{"]
        for prop in sorted(properties, key=lambda p: p.name):
            mark = "" if prop.required else "?"
            lines.append(f"{inner}{safe_key(prop.name)}{mark}: {self.expr(prop.node, inner)};")
        lines.append(indent + "}")
        return "\n".join(lines)

    def _map(self, node: MapNode, indent: str) -> str:
        """Index signatures: patterns become one mapped type over the union of
        their key domains; the catch-all becomes a string record."""
        pattern_ts = ""
        if node.entries:
            value = self.expr(make_union(e.value for e in node.entries), indent)
            keys = []
            for entry in node.entries:
                key = self._key_domain(entry.key)
                if key not in keys:
                    keys.append(key)
            if "string" in keys:
                pattern_ts = f"Record<string, {value}>"
            else:
                key_union = keys[0] if len(keys) == 1 else "(" + " | ".join(keys) + ")"
                pattern_ts = f"{{ [K in {key_union}]?: {value} }}"

        if node.catch_all is None:
            return pattern_ts
        record = f"Record<string, {self.expr(node.catch_all, indent)}>"
        if pattern_ts:
            return f"({pattern_ts} & {record})"
        return record

    def _key_domain(self, key) -> str:
        if key.kind == "number":
            return "`${number}`"
        if key.kind == "prefix":
            return f"`{key.text}${{string}}`"
        if key.kind == "exact":
            return json.dumps(key.text, ensure_ascii=False)
        return "string"

    # -- declarations -------------------------------------------------------------

    def _field(self, indent: str, key: str, node: SchemaNode, required: bool = True) -> str:
        mark = "" if required else "?"
        return f"{indent}{key}{mark}: {self.expr(node, indent)};\n"

    def render_enum(self, decl: NamedType) -> str:
        lines = [f"export const enum {decl.name} {{"]
        for member in decl.body.members:
            lines.append(f"{INDENT}{member.name} = {render_literal(member.value)},")
        lines.append("}")
        return "\n".join(lines) + "\n\n"

    def render_components(self, components: dict[str, dict[str, NamedType]]) -> str:
        sections = [s for s in COMPONENT_SECTIONS if components.get(s)]
        if not sections:
            return ""
        out = "export type Components = {\n"
        for section in sections:
            out += f"{INDENT}{section}: {{\n"
            entries = components[section]
            for name in sorted(entries):
                out += self._field(INDENT * 2, safe_key(name), entries[name].body)
            out += f"{INDENT}}};\n"
        return out + "};\n\n"

    def render_paths(self, label: str, items: dict[str, dict[str, Operation]]) -> str:
        out = f"export type {label} = {{\n"
        for key in sorted(items):
            out += f"{INDENT}{json.dumps(key, ensure_ascii=False)}: {{\n"
            for method in sorted(items[key]):
                out += f"{INDENT * 2}{method}: {{\n"
                out += self.render_operation(items[key][method], INDENT * 3)
                out += f"{INDENT * 2}}};\n"
            out += f"{INDENT}}};\n"
        return out + "};\n\n"

    def render_operation(self, op: Operation, indent: str) -> str:
        """Blocks in fixed order: params, query, headers, cookies, requestBody,
        responses, security, servers. Empty blocks are left out."""
        out = ""
        for label, params in (
            ("params", op.path_params),
            ("query", op.query),
            ("headers", op.headers),
            ("cookies", op.cookies),
        ):
            if params:
                out += self._field(indent, label, parameters_node(params))
        if op.request_body is not None:
            out += self._field(indent, "requestBody", op.request_body)

        out += f"{indent}responses: {{\n"
        for code, node in op.responses:
            key = code if code.isdigit() else safe_key(code)
            out += self._field(indent + INDENT, key, node)
        out += f"{indent}}};\n"

        if op.security:
            out += self._field(indent, "security", security_node(op.security))
        if op.servers:
            out += self._field(indent, "servers", servers_node(op.servers))
        return out

    def render(self, model: TypeModel, config: GeneratorConfig) -> str:
        out = render_header(config, model.openapi_version)
        for name in sorted(model.enums):
            out += self.render_enum(model.enums[name])
        out += self.render_components(model.components)
        out += self.render_paths("Routes", model.routes)
        if model.webhooks:
            out += self.render_paths("Webhooks", model.webhooks)
        if model.servers:
            out += f"export type Servers = {self.expr(servers_node(model.servers))};\n\n"
        return out


def parameters_node(params: tuple[BoundParameter, ...]) -> ObjectNode:
    return ObjectNode(properties=tuple(Property(name=p.name, node=p.node, required=p.required) for p in params))


def _literal_array(values) -> ArrayNode:
    return ArrayNode(items=make_union(LiteralNode(value=v) for v in values))


def security_node(requirements) -> ArrayNode:
    """``[{A: [..]}, {B: []}]`` -> ``({ A: ("scope")[] } | { B: string[] })[]``."""
    alternatives = []
    for requirement in requirements:
        alternatives.append(
            ObjectNode(
                properties=tuple(
                    Property(
                        name=scheme,
                        node=_literal_array(scopes) if scopes else ArrayNode(items=STRING),
                        required=True,
                    )
                    for scheme, scopes in sorted(requirement.items())
                )
            )
        )
    return ArrayNode(items=make_union(alternatives))


def servers_node(servers: tuple[Server, ...] | list[Server]) -> ArrayNode:
    alternatives = []
    for server in servers:
        fields = [Property(name="url", node=LiteralNode(value=server.url), required=True)]
        if server.description:
            fields.append(Property(name="description", node=LiteralNode(value=server.description), required=True))
        if server.variables:
            variables = []
            for name in sorted(server.variables):
                var = server.variables[name]
                var_fields = [Property(name="default", node=LiteralNode(value=var.default), required=True)]
                if var.description:
                    var_fields.append(Property(name="description", node=LiteralNode(value=var.description), required=True))
                if var.enum:
                    var_fields.append(Property(name="enum", node=_literal_array(var.enum), required=True))
                variables.append(Property(name=name, node=ObjectNode(properties=tuple(var_fields)), required=True))
            fields.append(Property(name="variables", node=ObjectNode(properties=tuple(variables)), required=True))
        alternatives.append(ObjectNode(properties=tuple(fields)))
    return ArrayNode(items=make_union(alternatives))


def render_module(model: TypeModel, config: GeneratorConfig) -> str:
    """Render the complete declaration module for one document."""
    return TypeScriptRenderer().render(model, config)
