"""Map/pattern resolver: patternProperties and additionalProperties.

Explicit ``properties`` always win over index signatures; they are
intersected with the index when both are present.
"""

from typing import Any

from openapi_tsgen.schema.errors import UnsupportedSchemaConstructError
from openapi_tsgen.schema.model import (
    NEVER,
    UNKNOWN,
    KeyDomain,
    MapEntry,
    MapNode,
    ObjectNode,
    SchemaNode,
    make_intersection,
    make_union,
)

NUMERIC_PATTERNS = ("^[0-9]+$", "^\\d+$")
REGEX_META = set("[]()|+*?.\\{}")


def key_domain(pattern: str) -> KeyDomain:
    """Derive the key set a pattern can match, as far as a template literal can say.

    ``^\\d+$`` -> numeric strings, ``^x-`` / ``^x-.*`` -> strings starting with
    ``x-``, ``^id$`` -> exactly ``id``. Anything more expressive -> any string.
    """
    if pattern in NUMERIC_PATTERNS:
        return KeyDomain(kind="number")
    if not pattern.startswith("^"):
        return KeyDomain(kind="string")

    text = pattern[1:]
    exact = text.endswith("$")
    if exact:
        text = text[:-1]
    if text.endswith(".*") or text.endswith(".+"):
        text = text[:-2]
    if not text or "`" in text or REGEX_META & set(text):
        return KeyDomain(kind="string")
    return KeyDomain(kind="exact" if exact else "prefix", text=text)


class MapResolver:
    def __init__(self, synthesizer):
        self.s = synthesizer

    def resolve(self, raw: dict, fields: ObjectNode, site) -> SchemaNode:
        """Combine named fields with the schema's index signatures.

        Overlapping patterns are not separated: every pattern value is
        allowed under the union of all pattern key domains.
        """
        entries = self._entries(raw.get("patternProperties"), site)
        additional = raw.get("additionalProperties")
        catch_all = self._catch_all(additional, site)
        if catch_all is not None and entries:
            catch_all = make_union([catch_all] + [e.value for e in entries])

        if entries or catch_all is not None:
            index = MapNode(entries=tuple(entries), catch_all=catch_all)
            if fields.properties:
                return make_intersection([fields, index])
            return index
        if fields.properties:
            return fields
        if additional is False:
            return MapNode(catch_all=NEVER)
        return MapNode(catch_all=UNKNOWN)

    def _entries(self, patterns: Any, site) -> list[MapEntry]:
        if patterns is None:
            return []
        if not isinstance(patterns, dict):
            raise UnsupportedSchemaConstructError("patternProperties", site.origin, "must be a mapping")
        return [
            MapEntry(
                pattern=pattern,
                key=key_domain(pattern),
                value=self.s.synthesize(patterns[pattern], site.at("patternProperties", pattern)),
            )
            for pattern in sorted(patterns)
        ]

    def _catch_all(self, additional: Any, site) -> SchemaNode | None:
        if additional is None or additional is False:
            return None
        if additional is True:
            return UNKNOWN
        return self.s.synthesize(additional, site.at("additionalProperties"))
