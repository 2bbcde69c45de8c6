"""One generation run: document -> finished, immutable TypeModel.

Each call builds its own index, name allocator and synthesizer, so runs
over different documents never share state.
"""

import logging

from openapi_tsgen.parser.base import ApiDocument

from openapi_tsgen.schema.binder import OperationBinder
from openapi_tsgen.schema.model import TypeModel
from openapi_tsgen.schema.naming import NameAllocator
from openapi_tsgen.schema.resolver import ReferenceIndex
from openapi_tsgen.schema.synthesizer import SchemaSynthesizer

logger = logging.getLogger(__name__)


def generate_model(document: ApiDocument) -> TypeModel:
    """Synthesize every component, route and webhook of ``document``.

    Raises a GenerationError subclass on the first unresolvable construct;
    nothing partial is returned.
    """
    index = ReferenceIndex(document.raw_sections())
    names = NameAllocator()
    synthesizer = SchemaSynthesizer(index, names)
    binder = OperationBinder(synthesizer, document)

    components = binder.bind_components()
    routes = binder.bind_paths(document.paths, "paths")
    webhooks = binder.bind_paths(document.webhooks, "webhooks")

    enums = {name: synthesizer.enums[name] for name in sorted(synthesizer.enums)}
    logger.info(
        "model: %d component(s), %d enum(s), %d path(s), %d webhook(s)",
        sum(len(entries) for entries in components.values()),
        len(enums),
        len(routes),
        len(webhooks),
    )
    return TypeModel(
        openapi_version=document.openapi,
        components=components,
        enums=enums,
        routes=routes,
        webhooks=webhooks,
        servers=tuple(document.servers),
    )
