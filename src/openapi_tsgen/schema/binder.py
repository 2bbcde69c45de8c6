"""Operation binder: per path/webhook x method descriptions and the non-schema
component sections.

Request-side sites (request bodies, parameters) are synthesized in the
``input`` access mode, response-side sites (responses, headers) in the
``output`` mode.
"""

import logging

from openapi_tsgen.parser.base import (
    ApiDocument,
    ApiOperation,
    Header,
    MediaType,
    OAuthFlow,
    Parameter,
    PathItem,
    RequestBody,
    Response,
    SecurityScheme,
)

from openapi_tsgen.schema.errors import UnresolvedReferenceError, UnsupportedSchemaConstructError
from openapi_tsgen.schema.model import (
    NEVER,
    STRING,
    UNKNOWN,
    BoundParameter,
    LiteralNode,
    NamedType,
    ObjectNode,
    Operation,
    Property,
    SchemaNode,
    make_union,
)
from openapi_tsgen.schema.naming import camel_case
from openapi_tsgen.schema.resolver import origin_path, pointer
from openapi_tsgen.schema.synthesizer import MODE_INPUT, MODE_OUTPUT, SchemaSynthesizer, Site

logger = logging.getLogger(__name__)

PARAMETER_BUCKETS = ("path", "query", "header", "cookie")
OAUTH_FLOWS = {
    "implicit": "implicit",
    "password": "password",
    "client_credentials": "clientCredentials",
    "authorization_code": "authorizationCode",
}


def _status_order(code: str) -> tuple:
    # numeric codes first, in numeric order; then 1XX-style ranges and "default"
    return (0, int(code), "") if code.isdigit() else (1, 0, code)


def _literal_object(fields: dict[str, SchemaNode]) -> ObjectNode:
    return ObjectNode(
        properties=tuple(Property(name=k, node=fields[k], required=True) for k in sorted(fields))
    )


class OperationBinder:
    def __init__(self, synthesizer: SchemaSynthesizer, document: ApiDocument):
        self.s = synthesizer
        self.index = synthesizer.index
        self.doc = document

    # -- components ---------------------------------------------------------------

    def bind_components(self) -> dict[str, dict[str, NamedType]]:
        """Component sections in declaration-table order, names sorted."""
        out: dict[str, dict[str, NamedType]] = {}
        binders = (
            ("schemas", lambda name, origin: self.s.component(name)),
            ("responses", self._component_response),
            ("requestBodies", self._component_request_body),
            ("parameters", self._component_parameter),
            ("headers", self._component_header),
            ("securitySchemes", self._component_security_scheme),
        )
        for section, bind in binders:
            names = self.index.names(section)
            if not names:
                continue
            logger.debug("binding %d entries of components.%s", len(names), section)
            out[section] = {}
            for name in names:
                origin = origin_path("components", section, name)
                out[section][name] = NamedType(name=name, body=bind(name, origin), origin=origin)
        return out

    def _aliased(self, section: str, name: str, origin: str) -> SchemaNode | None:
        # a component that is itself a $ref becomes a lookup of its target
        ref = getattr(self.index.get(section, name), "ref", None)
        if not ref:
            return None
        target, _ = self.index.follow(ref, origin, section)
        return self.index.reference(pointer(section, target), origin, section)

    def _component_response(self, name: str, origin: str) -> SchemaNode:
        aliased = self._aliased("responses", name, origin)
        if aliased is not None:
            return aliased
        return self.response(self.index.get("responses", name), Site(origin=origin, owner=name, mode=MODE_OUTPUT))

    def _component_request_body(self, name: str, origin: str) -> SchemaNode:
        aliased = self._aliased("requestBodies", name, origin)
        if aliased is not None:
            return aliased
        return self.request_body(self.index.get("requestBodies", name), Site(origin=origin, owner=name, mode=MODE_INPUT))

    def _component_parameter(self, name: str, origin: str) -> SchemaNode:
        aliased = self._aliased("parameters", name, origin)
        if aliased is not None:
            return aliased
        param = self.index.get("parameters", name)
        return self._parameter_type(param, Site(origin=origin, owner=name, mode=MODE_INPUT))

    def _component_header(self, name: str, origin: str) -> SchemaNode:
        aliased = self._aliased("headers", name, origin)
        if aliased is not None:
            return aliased
        header = self.index.get("headers", name)
        return self._parameter_type(header, Site(origin=origin, owner=name, mode=MODE_OUTPUT))

    def _component_security_scheme(self, name: str, origin: str) -> SchemaNode:
        aliased = self._aliased("securitySchemes", name, origin)
        if aliased is not None:
            return aliased
        return self.security_scheme(self.index.get("securitySchemes", name), origin)

    def security_scheme(self, scheme: SecurityScheme, origin: str) -> ObjectNode:
        """Literal object type describing a security scheme."""
        fields: dict[str, SchemaNode] = {"type": LiteralNode(value=scheme.type)}
        if scheme.type == "apiKey":
            fields["name"] = LiteralNode(value=scheme.name)
            fields["in"] = LiteralNode(value=scheme.in_)
        elif scheme.type == "http":
            fields["scheme"] = LiteralNode(value=scheme.scheme)
            if scheme.bearer_format:
                fields["bearerFormat"] = LiteralNode(value=scheme.bearer_format)
        elif scheme.type == "oauth2":
            flows = {}
            for attr, key in OAUTH_FLOWS.items():
                flow = getattr(scheme.flows, attr, None) if scheme.flows else None
                if flow is not None:
                    flows[key] = self._oauth_flow(flow)
            fields["flows"] = _literal_object(flows)
        elif scheme.type == "openIdConnect":
            fields["openIdConnectUrl"] = LiteralNode(value=scheme.open_id_connect_url)
        elif scheme.type != "mutualTLS":
            raise UnsupportedSchemaConstructError("securityScheme", origin, f"unknown type {scheme.type!r}")
        return _literal_object(fields)

    def _oauth_flow(self, flow: OAuthFlow) -> ObjectNode:
        fields: dict[str, SchemaNode] = {
            "scopes": _literal_object({scope: STRING for scope in flow.scopes}),
        }
        if flow.authorization_url:
            fields["authorizationUrl"] = STRING
        if flow.token_url:
            fields["tokenUrl"] = STRING
        if flow.refresh_url:
            fields["refreshUrl"] = STRING
        return _literal_object(fields)

    # -- paths and webhooks -------------------------------------------------------------

    def bind_paths(self, items: dict[str, PathItem], kind: str = "paths") -> dict[str, dict[str, Operation]]:
        """Bind every path (or webhook event) x method, keys sorted."""
        out: dict[str, dict[str, Operation]] = {}
        for key in sorted(items):
            item = self._path_item(items[key], origin_path(kind, key))
            ops = {}
            for method, op in item.operations():
                ops[method] = self.bind_operation(key, method, item, op, origin_path(kind, key, method))
            if ops:
                out[key] = ops
        return out

    def _path_item(self, item: PathItem, origin: str) -> PathItem:
        if not item.ref:
            return item
        _, target = self.index.follow(item.ref, origin, "pathItems")
        return target

    def bind_operation(self, path: str, method: str, item: PathItem, op: ApiOperation, origin: str) -> Operation:
        owner = camel_case(op.operation_id) if op.operation_id else camel_case(method, path)
        logger.debug("binding %s as %s", origin, owner)

        buckets: dict[str, list[BoundParameter]] = {b: [] for b in PARAMETER_BUCKETS}
        for param in self._merged_parameters(item.parameters, op.parameters, origin):
            bound, location = self._bind_parameter(param, owner, origin)
            buckets[location].append(bound)

        request_body = None
        if op.request_body is not None:
            request_body = self.request_body(
                op.request_body,
                Site(origin=f"{origin}.requestBody", owner=owner + "Request", mode=MODE_INPUT),
            )

        responses = []
        for code in sorted(op.responses, key=_status_order):
            site = Site(origin=origin + "." + origin_path("responses", code), owner=f"{owner}Response{camel_case(code)}", mode=MODE_OUTPUT)
            responses.append((code, self.response(op.responses[code], site)))

        return Operation(
            path_params=tuple(sorted(buckets["path"], key=lambda p: p.name)),
            query=tuple(sorted(buckets["query"], key=lambda p: p.name)),
            headers=tuple(sorted(buckets["header"], key=lambda p: p.name)),
            cookies=tuple(sorted(buckets["cookie"], key=lambda p: p.name)),
            request_body=request_body,
            responses=tuple(responses),
            security=self._security(op, origin),
            servers=tuple(op.servers or item.servers or self.doc.servers),
        )

    # -- parameters -----------------------------------------------------------------

    def _identity(self, param: Parameter, origin: str) -> tuple[str, str]:
        if param.ref:
            _, target = self.index.follow(param.ref, origin, "parameters")
            return target.name, target.in_
        return param.name, param.in_

    def _merged_parameters(self, inherited: list[Parameter], own: list[Parameter], origin: str) -> list[Parameter]:
        """Path-item parameters overridden by operation parameters on (name, in)."""
        merged: dict[tuple[str, str], Parameter] = {}
        for param in list(inherited) + list(own):
            merged[self._identity(param, origin)] = param
        return list(merged.values())

    def _bind_parameter(self, param: Parameter, owner: str, origin: str) -> tuple[BoundParameter, str]:
        if param.ref:
            node = self.index.reference(param.ref, origin, "parameters")
            _, target = self.index.follow(param.ref, origin, "parameters")
        else:
            target = param
            site = Site(
                origin=origin + "." + origin_path("parameters", param.in_, param.name),
                owner=owner,
                mode=MODE_INPUT,
                path=(param.name,),
            )
            node = self._parameter_type(param, site)

        if target.in_ not in PARAMETER_BUCKETS:
            raise UnsupportedSchemaConstructError("parameter", origin, f"unknown location {target.in_!r} for {target.name!r}")
        required = target.required or target.in_ == "path"
        return BoundParameter(name=target.name, node=node, required=required), target.in_

    def _parameter_type(self, param: Parameter | Header, site: Site) -> SchemaNode:
        if param.schema_ is not None:
            return self.s.synthesize(param.schema_, site.at("schema"))
        if param.content:
            return self._media_union(param.content, site)
        return UNKNOWN

    # -- bodies -------------------------------------------------------------------------

    def _media_union(self, content: dict[str, MediaType], site: Site) -> SchemaNode:
        return make_union(
            self.s.synthesize(content[media].schema_, site.at("content", media, "schema"))
            for media in sorted(content)
        )

    def request_body(self, body: RequestBody, site: Site) -> SchemaNode:
        if body.ref:
            return self.index.reference(body.ref, site.origin, "requestBodies")
        if not body.content:
            return NEVER
        return self._media_union(body.content, site)

    def response(self, response: Response, site: Site) -> SchemaNode:
        """Status entry type: body type, or ``{ headers; body }`` when headers are declared."""
        if response.ref:
            return self.index.reference(response.ref, site.origin, "responses")
        body = self._media_union(response.content, site) if response.content else NEVER
        if not response.headers:
            return body

        headers = []
        for name in sorted(response.headers):
            header = response.headers[name]
            header_site = site.at("headers", name).prop_path(name)
            if header.ref:
                node = self.index.reference(header.ref, header_site.origin, "headers")
                _, target = self.index.follow(header.ref, header_site.origin, "headers")
                required = target.required
            else:
                node = self._parameter_type(header, header_site)
                required = header.required
            headers.append(Property(name=name, node=node, required=required))
        return ObjectNode(
            properties=(
                Property(name="body", node=body, required=True),
                Property(name="headers", node=ObjectNode(properties=tuple(headers)), required=True),
            )
        )

    # -- security -------------------------------------------------------------------------

    def _security(self, op: ApiOperation, origin: str) -> tuple[dict[str, tuple[str, ...]], ...]:
        requirements = op.security if op.security is not None else (self.doc.security or [])
        out = []
        for requirement in requirements:
            for scheme in requirement:
                if not self.index.has("securitySchemes", scheme):
                    raise UnresolvedReferenceError(pointer("securitySchemes", scheme), f"{origin}.security")
            out.append({scheme: tuple(scopes) for scheme, scopes in requirement.items()})
        return tuple(out)

