"""
Component metadata catalog loading.

The catalog is fetched from ``mdc.componentMetadataURL``, which may be an
``http(s)://`` URL, a ``file://`` URI or a plain path (relative paths resolve
against the workspace root).  Remote catalogs are JSON; local files may be
JSON or YAML.  A loaded catalog is reused until its TTL expires, and a failed
refresh keeps serving the previous catalog.
"""
from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Callable
from urllib.parse import unquote, urlparse

import yaml

from mdclsp import __version__
from mdclsp.config import DEFAULT_CACHE_TTL_MINUTES
from mdclsp.schema import ComponentSchema, parse_catalog

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0  # seconds
RETRY_AFTER_FAILURE = 60.0    # seconds


class MetadataError(Exception):
    """A catalog could not be fetched or decoded."""


def _is_remote(source: str) -> bool:
    return urlparse(source).scheme in ('http', 'https')


def _local_path(source: str, base_dir: str | None) -> Path:
    parsed = urlparse(source)
    if parsed.scheme == 'file':
        return Path(unquote(parsed.path))
    path = Path(source).expanduser()
    if not path.is_absolute() and base_dir:
        path = Path(base_dir) / path
    return path


def _decode(text: str, suffix: str, source: str) -> Any:
    try:
        if suffix in ('.yml', '.yaml'):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise MetadataError(f'Invalid component metadata in {source}: {e}') from e


def fetch_catalog(source: str, base_dir: str | None = None,
                  timeout: float = DEFAULT_FETCH_TIMEOUT) -> list[ComponentSchema]:
    """Fetch and parse the catalog at *source*; raise :class:`MetadataError`."""
    if _is_remote(source):
        request = urllib.request.Request(source, headers={
            'Accept': 'application/json',
            'User-Agent': f'mdclsp/{__version__}',
        })
        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                text = response.read().decode('utf-8')
        except urllib.error.HTTPError as e:
            raise MetadataError(f'Failed to fetch MDC component metadata: {e.code} {e.reason}') from e
        except (urllib.error.URLError, OSError, UnicodeDecodeError) as e:
            raise MetadataError(f'Failed to fetch MDC component metadata: {e}') from e
        data = _decode(text, '.json', source)
    else:
        path = _local_path(source, base_dir)
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            raise MetadataError(f'Failed to read MDC component metadata: {e}') from e
        data = _decode(text, path.suffix.lower(), source)

    try:
        return parse_catalog(data)
    except TypeError as e:
        raise MetadataError(f'Invalid component metadata in {source}: {e}') from e


class MetadataStore:
    """Holds the current catalog and decides when to refresh it."""

    def __init__(
        self,
        source: str | None = None,
        ttl_minutes: float = DEFAULT_CACHE_TTL_MINUTES,
        base_dir: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        fetch: Callable[..., list[ComponentSchema]] = fetch_catalog,
    ):
        self.source = source
        self.ttl_minutes = ttl_minutes
        self.base_dir = base_dir
        self._clock = clock
        self._fetch = fetch
        self._catalog: list[ComponentSchema] | None = None
        self._last_fetch: float | None = None
        self._last_failure: float | None = None
        self.last_error: str | None = None

    @property
    def cached(self) -> list[ComponentSchema] | None:
        return self._catalog

    def configure(self, source: str | None, ttl_minutes: float,
                  base_dir: str | None = None) -> bool:
        """Apply new settings; return True when the source changed.

        A changed source drops the cached catalog so the next load fetches.
        """
        self.ttl_minutes = ttl_minutes
        if base_dir is not None:
            self.base_dir = base_dir
        if source == self.source:
            return False
        self.source = source
        self._catalog = None
        self.last_error = None
        self._last_fetch = None
        self._last_failure = None
        return True

    def is_stale(self) -> bool:
        if not self.source:
            return False
        now = self._clock()
        if self._last_failure is not None and now - self._last_failure < RETRY_AFTER_FAILURE:
            return False
        if self._last_fetch is None:
            return True
        return (now - self._last_fetch) >= self.ttl_minutes * 60

    def load(self, force: bool = False) -> list[ComponentSchema] | None:
        """Return the catalog, fetching it when forced or stale.

        Returns ``None`` when no source is configured.  Fetch failures are
        logged and the previous catalog (if any) is returned.
        """
        if not self.source:
            logger.debug('No component metadata source configured')
            return None
        if not force and not self.is_stale():
            logger.debug('Using cached MDC component metadata')
            return self._catalog

        logger.info('Fetching MDC component metadata from: %s', self.source)
        try:
            catalog = self._fetch(self.source, base_dir=self.base_dir)
        except MetadataError as e:
            logger.error('Error fetching metadata: %s', e)
            self.last_error = str(e)
            self._last_failure = self._clock()
            return self._catalog

        logger.info('MDC component metadata fetched successfully (%d components)', len(catalog))
        self._catalog = catalog
        self._last_fetch = self._clock()
        self.last_error = None
        self._last_failure = None
        return catalog
