"""
Cache ownership for one server session.

``CacheLifecycle`` holds every memo table the completion path relies on:

* split lines per document URI (``LineStore``),
* YAML block boundaries per document URI and line,
* the ``SchemaIndex`` with its per-component derived facts.

Document caches are dropped on every change/close of that document; the
schema caches are dropped only when the whole catalog is replaced.
"""
from __future__ import annotations

import logging
from typing import Iterable

from mdclsp.document import LineStore, MdcDocument
from mdclsp.scanner import YamlBoundary, yaml_boundaries
from mdclsp.schema import ComponentSchema, SchemaIndex

logger = logging.getLogger(__name__)


class CacheLifecycle:

    def __init__(self, catalog: Iterable[ComponentSchema] = ()):
        self.line_store = LineStore()
        self._boundaries: dict[str, dict[int, YamlBoundary]] = {}
        self.schemas = SchemaIndex(catalog)

    def lines(self, doc: MdcDocument) -> list[str]:
        return self.line_store.get_lines(doc)

    def yaml_boundaries(self, doc: MdcDocument, line_number: int) -> YamlBoundary | None:
        """Boundaries of the YAML block around *line_number* (memoised).

        Lines outside any block are not memoised, so they are rescanned.
        """
        per_doc = self._boundaries.setdefault(doc.uri, {})
        boundaries = per_doc.get(line_number)
        if boundaries is None:
            boundaries = yaml_boundaries(self.lines(doc), line_number)
            if boundaries is not None:
                per_doc[line_number] = boundaries
        return boundaries

    def invalidate_document(self, uri: str) -> None:
        self.line_store.invalidate(uri)
        self._boundaries.pop(uri, None)

    def invalidate_catalog(self, catalog: Iterable[ComponentSchema] | None = None) -> None:
        """Drop every schema-derived fact; replace the catalog when given."""
        if catalog is None:
            self.schemas.clear()
        else:
            self.schemas = SchemaIndex(catalog)
        logger.debug('CacheLifecycle: catalog caches reset (%d components)', len(self.schemas))

    def clear(self) -> None:
        self.line_store.clear()
        self._boundaries.clear()
        self.schemas.clear()
