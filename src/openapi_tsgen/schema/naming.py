"""Name allocator for declarations that need a display name.

A name's identity is the origin path of the schema it names: asking again
for an origin that already has a name returns that name, so one anonymous
enum reached through several use sites is declared exactly once.

Synthetic names are ``<Owner><PropertyPath><Tags>Enum``. When that collides
with a name allocated elsewhere, the disambiguation tier depends on the kind
of schema:

1. a branch of a multi-branch composition carries its branch tag (A, B, ...);
   siblings always coincide on the base name, so they are tagged up front;
2. a single-member enum appends its normalized value (``CarKindCarEnum``);
3. any other enum appends an ordinal (``OrderStatusEnum2``).

If the chosen tier still collides, allocation fails: a name must never
depend on allocation order alone.
"""

import logging
import re
from collections.abc import Sequence

from openapi_tsgen.schema.errors import NameCollisionError
from openapi_tsgen.schema.model import EnumMember, format_number

logger = logging.getLogger(__name__)

RESERVED_NAMES = ("Components", "Routes", "Webhooks", "Servers")
ENUM_SUFFIX = "Enum"
VALUE_PREFIX = "Value"
NUMBER_MEMBER_PREFIX = "VALUE_"

NOISE_TOKENS = {"allof", "anyof", "oneof"}

_IDENT_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def is_identifier(s: str) -> bool:
    return bool(_IDENT_RE.match(s))


def _split_camel(token: str) -> list[str]:
    """Split on lower->upper and letter<->digit boundaries."""
    return re.findall(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+", token) or [token]


def split_words(hint: str) -> list[str]:
    words = []
    for token in re.split(r"[^A-Za-z0-9]+", hint):
        if not token or token.lower() in NOISE_TOKENS:
            continue
        words.extend(w for w in _split_camel(token) if w.lower() not in NOISE_TOKENS)
    return words


def camel_case(*hints: str) -> str:
    """``camel_case("Order", "billing_address")`` -> ``OrderBillingAddress``."""
    out = []
    for hint in hints:
        for word in split_words(hint):
            out.append(word[:1].upper() + word[1:])
    return "".join(out)


def value_suffix(value: int | float | str) -> str:
    """Normalized literal used to disambiguate single-member enums."""
    if isinstance(value, str):
        return camel_case(value)
    return VALUE_PREFIX + format_number(value).replace("-", "Neg").replace(".", "_")


def member_name(value: int | float | str) -> str:
    if isinstance(value, str):
        if value == "":
            return "Empty"
        name = re.sub(r"[^A-Za-z0-9]", "_", value).upper()
        if name[0].isdigit():
            name = "_" + name
    else:
        text = format_number(value).replace("-", "NEG_").replace(".", "_")
        name = NUMBER_MEMBER_PREFIX + text
    return name if is_identifier(name) else VALUE_PREFIX


def enum_members(values: Sequence[int | float | str]) -> tuple[EnumMember, ...]:
    """Member names for enum values, in declaration order; repeats get _2, _3, ..."""
    seen: dict[str, int] = {}
    members = []
    for value in values:
        name = member_name(value)
        count = seen.get(name, 0) + 1
        seen[name] = count
        if count > 1:
            name = f"{name}_{count}"
        members.append(EnumMember(name=name, value=value))
    return tuple(members)


class NameAllocator:
    """Allocation table for one document's generation run.

    Never shared between documents, so independent runs cannot interfere.
    """

    def __init__(self) -> None:
        self._by_origin: dict[str, str] = {}
        self._origins: dict[str, str] = {name: "<reserved>" for name in RESERVED_NAMES}

    def name_for(self, origin: str) -> str | None:
        return self._by_origin.get(origin)

    def allocated(self) -> dict[str, str]:
        """Allocated name -> origin path (reserved names excluded)."""
        return {name: origin for origin, name in self._by_origin.items()}

    def allocate_enum(
        self,
        origin: str,
        owner: str,
        path: Sequence[str] = (),
        values: Sequence[int | float | str] = (),
        branch_tags: str = "",
    ) -> str:
        """Return the enum name for the schema at ``origin``, allocating it on first use."""
        existing = self._by_origin.get(origin)
        if existing is not None:
            return existing

        stem = camel_case(owner, *path) or ENUM_SUFFIX
        if stem.endswith(ENUM_SUFFIX) and not branch_tags:
            stem = stem[: -len(ENUM_SUFFIX)]
        name = stem + branch_tags + ENUM_SUFFIX

        if name in self._origins and not branch_tags:
            if len(values) == 1:
                name = stem + value_suffix(values[0]) + ENUM_SUFFIX
            else:
                base = name
                i = 2
                while name in self._origins:
                    name = f"{base}{i}"
                    i += 1
            logger.debug("enum name for %s disambiguated to %s", origin, name)

        if name in self._origins:
            raise NameCollisionError(name, origin, self._origins[name])

        self._origins[name] = origin
        self._by_origin[origin] = name
        return name
