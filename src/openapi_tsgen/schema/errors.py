"""Errors raised while turning a document into a type model.

Every error here is fatal to the document being generated and to nothing
else: the pipeline never emits partial output for a failed document.
"""


class GenerationError(Exception):
    """Base class for all type-synthesis failures."""


class UnresolvedReferenceError(GenerationError):
    """A pointer has no matching entry in the document."""

    def __init__(self, pointer: str, origin: str, reason: str = "no matching document entry"):
        self.pointer = pointer
        self.origin = origin
        self.reason = reason
        super().__init__(f"{origin}: unresolved reference {pointer!r} ({reason})")


class UnsupportedSchemaConstructError(GenerationError):
    """A keyword combination has no representation in the target type algebra."""

    def __init__(self, construct: str, origin: str, detail: str = ""):
        self.construct = construct
        self.origin = origin
        self.detail = detail
        message = f"{origin}: unsupported {construct}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class NameCollisionError(GenerationError):
    """Two distinct schemas derived the same name after every disambiguation tier."""

    def __init__(self, name: str, origin: str, existing_origin: str):
        self.name = name
        self.origin = origin
        self.existing_origin = existing_origin
        super().__init__(
            f"{origin}: synthesized name {name!r} already allocated to {existing_origin}"
        )
