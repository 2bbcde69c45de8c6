"""Reference resolver: an addressable index over a document's components.

References are resolved on demand. The synthesizer keeps a ``$ref`` as a
``ReferenceNode`` and only looks the target up when it explicitly needs the
target's body, so a self-referential schema stays a finite reference instead
of being inlined forever.
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from openapi_tsgen.schema.errors import UnresolvedReferenceError
from openapi_tsgen.schema.model import ReferenceNode

logger = logging.getLogger(__name__)

COMPONENTS_PREFIX = "#/components/"


def _decode_token(token: str) -> str:
    # JSON Pointer escaping per RFC 6901
    return token.replace("~1", "/").replace("~0", "~")


def _encode_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def pointer(section: str, name: str) -> str:
    return f"{COMPONENTS_PREFIX}{_encode_token(section)}/{_encode_token(name)}"


def origin_path(*segments) -> str:
    """Join document keys into a dotted origin path.

    ``~`` and ``.`` inside a key are escaped as ``~0`` and ``~1``.
    """
    return ".".join(str(s).replace("~", "~0").replace(".", "~1") for s in segments)


def parse_pointer(ref: str, origin: str) -> tuple[str, str]:
    """Split ``#/components/<section>/<name>`` into ``(section, name)``."""
    if not isinstance(ref, str) or not ref.startswith(COMPONENTS_PREFIX):
        raise UnresolvedReferenceError(
            str(ref), origin, "only #/components/<section>/<name> pointers are supported"
        )
    parts = ref[len(COMPONENTS_PREFIX):].split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise UnresolvedReferenceError(ref, origin, "pointer must name a section and an entry")
    return _decode_token(parts[0]), _decode_token(parts[1])


class ReferenceIndex:
    """Maps pointer strings to the raw component objects of one document.

    Args:
        sections: section name -> entry name -> raw object (a schema dict,
            or a parsed document model for the other sections).
    """

    def __init__(self, sections: Mapping[str, Mapping[str, Any]]):
        self._sections = {section: dict(entries) for section, entries in sections.items()}
        self._in_progress: list[str] = []

    def names(self, section: str) -> list[str]:
        """Entry names of a section, sorted."""
        return sorted(self._sections.get(section, {}))

    def get(self, section: str, name: str) -> Any:
        return self._sections.get(section, {}).get(name)

    def has(self, section: str, name: str) -> bool:
        return name in self._sections.get(section, {})

    def lookup(self, ref: str, origin: str, section: str | None = None) -> tuple[str, str, Any]:
        """Resolve a pointer to ``(section, name, raw object)``.

        Raises UnresolvedReferenceError when the pointer is malformed, points
        into a different section than ``section``, or names no entry.
        """
        target_section, name = parse_pointer(ref, origin)
        if section is not None and target_section != section:
            raise UnresolvedReferenceError(ref, origin, f"expected a pointer into components.{section}")
        entries = self._sections.get(target_section)
        if entries is None or name not in entries:
            raise UnresolvedReferenceError(ref, origin)
        return target_section, name, entries[name]

    def reference(self, ref: str, origin: str, section: str | None = None) -> ReferenceNode:
        """Validate a pointer and return it as a reference node (never inlined)."""
        target_section, name, _ = self.lookup(ref, origin, section)
        return ReferenceNode(section=target_section, name=name)

    def follow(self, ref: str, origin: str, section: str) -> tuple[str, Any]:
        """Resolve a non-schema component, following components that are themselves $refs.

        Returns ``(name, object)`` of the last entry in the chain.
        """
        seen: list[str] = []
        current = ref
        while True:
            if current in seen:
                chain = " -> ".join(seen + [current])
                raise UnresolvedReferenceError(ref, origin, f"reference cycle: {chain}")
            seen.append(current)
            _, name, target = self.lookup(current, origin, section)
            next_ref = getattr(target, "ref", None)
            if not next_ref:
                return name, target
            current = next_ref

    def in_progress(self, ref: str) -> bool:
        return ref in self._in_progress

    @contextmanager
    def resolving(self, ref: str) -> Iterator[None]:
        """Mark ``ref`` as being expanded for the duration of the block."""
        self._in_progress.append(ref)
        logger.debug("expanding %s (depth %d)", ref, len(self._in_progress))
        try:
            yield
        finally:
            self._in_progress.pop()
