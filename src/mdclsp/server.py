"""
mdclsp Language Server.

Registers LSP capabilities and wires the MDC completion and folding
handlers to the per-session caches and the component metadata catalog.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import unquote, urlparse

from pygls.lsp.server import LanguageServer
from lsprotocol import types as lsp

logger = logging.getLogger(__name__)

from mdclsp import __version__
from mdclsp.cache import CacheLifecycle
from mdclsp.config import Settings, load_settings
from mdclsp.document import MdcDocument
from mdclsp.handlers import get_completions, get_folding_ranges
from mdclsp.metadata import MetadataStore
from mdclsp.schema import ComponentSchema

# ---------------------------------------------------------------------------
# Server instance + per-session state
# ---------------------------------------------------------------------------

server = LanguageServer(
    'mdclsp', __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)

# Per-URI document store (populated on open/change).
_docs: dict[str, MdcDocument] = {}

# Line, YAML-boundary and schema caches for this session.
_caches = CacheLifecycle()

# Component catalog source + TTL bookkeeping.
_metadata = MetadataStore()

_settings = Settings()
_workspace_root: str | None = None

# Settings given on the command line; applied on every initialize.
_startup_overrides: dict = {}

# Catalog currently installed in _caches (identity check avoids needless resets).
_installed_catalog: list[ComponentSchema] | None = None

# Pending catalog refresh, if any.
_refresh_task: asyncio.Future | None = None

# Catalog fetches do network/file I/O; keep them off the event loop.
_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='mdclsp-metadata')

COMPLETION_TRIGGER_CHARACTERS = [':', ' ', '\n']
REFRESH_METADATA_COMMAND = 'mdc.refreshComponentMetadata'


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _uri_to_path(uri: str) -> str:
    parsed = urlparse(uri)
    if parsed.scheme == 'file':
        return unquote(parsed.path)
    return uri


def _apply_log_level(raw: str | None) -> None:
    """Set the root logger level from a string like 'debug', 'warning', etc."""
    if not raw:
        return
    level = getattr(logging, raw.upper(), None)
    if isinstance(level, int):
        logging.getLogger().setLevel(level)


def _install_catalog(catalog: list[ComponentSchema] | None) -> None:
    """Replace the catalog used for completion (whole-catalog invalidation)."""
    global _installed_catalog
    if catalog is _installed_catalog:
        return
    _installed_catalog = catalog
    _caches.invalidate_catalog(catalog or [])
    logger.debug('_install_catalog: %d components', len(catalog or []))


async def _refresh_catalog(force: bool = False) -> list[ComponentSchema] | None:
    loop = asyncio.get_running_loop()
    catalog = await loop.run_in_executor(_executor, _metadata.load, force)
    _install_catalog(catalog)
    return catalog


def _schedule_catalog_refresh(force: bool = False) -> asyncio.Future | None:
    """Start a background catalog refresh unless one is already running."""
    global _refresh_task
    if not _metadata.source:
        return None
    if _refresh_task is not None and not _refresh_task.done():
        return _refresh_task
    _refresh_task = asyncio.ensure_future(_refresh_catalog(force))
    return _refresh_task


def _apply_settings(settings: Settings) -> None:
    """Make *settings* current and reconfigure the metadata store."""
    global _settings
    _settings = settings
    _apply_log_level(settings.effective_log_level)
    changed = _metadata.configure(
        settings.component_metadata_url,
        settings.component_metadata_cache_ttl,
        base_dir=_workspace_root,
    )
    if changed:
        logger.info('Component metadata source: %s', settings.component_metadata_url)
        _install_catalog(None)
        _schedule_catalog_refresh()


def set_startup_overrides(overrides: dict) -> None:
    """Record command-line settings to layer under the client's options."""
    global _startup_overrides
    _startup_overrides = dict(overrides)


def _show_message(message: str, kind: lsp.MessageType = lsp.MessageType.Info) -> None:
    try:
        server.window_show_message(lsp.ShowMessageParams(type=kind, message=message))
    except Exception:
        # Protocol not connected (e.g. during unit tests)
        logger.debug('_show_message: could not notify client: %s', message)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@server.feature(lsp.INITIALIZE)
def on_initialize(params: lsp.InitializeParams):
    global _workspace_root
    _workspace_root = _uri_to_path(params.root_uri) if params.root_uri else None
    opts = getattr(params, 'initialization_options', None)
    _apply_settings(load_settings(_workspace_root, opts, _startup_overrides))


@server.feature(lsp.WORKSPACE_DID_CHANGE_CONFIGURATION)
def did_change_configuration(params: lsp.DidChangeConfigurationParams):
    """Handle live config changes (e.g. user edits ``mdc.componentMetadataURL``)."""
    settings = getattr(params, 'settings', None) or {}
    if isinstance(settings, dict):
        _apply_settings(_settings.merged(settings.get('mdc', {})))


# ---------------------------------------------------------------------------
# Text document synchronisation
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams):
    td = params.text_document
    _caches.invalidate_document(td.uri)
    _docs[td.uri] = MdcDocument(uri=td.uri, source=td.text, version=td.version)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams):
    td = params.text_document
    source = params.content_changes[-1].text
    _caches.invalidate_document(td.uri)
    _docs[td.uri] = MdcDocument(uri=td.uri, source=source, version=td.version)


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams):
    uri = params.text_document.uri
    _docs.pop(uri, None)
    _caches.invalidate_document(uri)
    logger.debug('did_close: cleaned up caches for %s', uri)


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

@server.feature(
    lsp.TEXT_DOCUMENT_COMPLETION,
    lsp.CompletionOptions(trigger_characters=COMPLETION_TRIGGER_CHARACTERS),
)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList | None:
    doc = _docs.get(params.text_document.uri)
    if doc is None:
        return None
    if _metadata.is_stale():
        # Answer from the current catalog; the refresh lands for the next request
        _schedule_catalog_refresh()
    items = get_completions(
        doc, params.position, _caches,
        prop_completions=_settings.enable_prop_completions,
    )
    return lsp.CompletionList(is_incomplete=False, items=items)


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_FOLDING_RANGE)
def folding_range(params: lsp.FoldingRangeParams) -> list[lsp.FoldingRange] | None:
    doc = _docs.get(params.text_document.uri)
    if doc is None:
        return None
    return get_folding_ranges(_caches.lines(doc))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@server.command(REFRESH_METADATA_COMMAND)
async def cmd_refresh_metadata(*args):
    """Force a catalog refetch, bypassing the TTL."""
    if not _metadata.source:
        message = ('MDC component suggestions are not enabled. Please set '
                   'mdc.componentMetadataURL in settings to configure your completion provider.')
        logger.info(message)
        _show_message(message)
        return None

    _show_message(f'Fetching MDC component metadata from: {_metadata.source}')
    catalog = await _refresh_catalog(force=True)
    if _metadata.last_error is not None or catalog is None:
        _show_message(f'Error fetching metadata: {_metadata.last_error}', lsp.MessageType.Error)
        return None
    _show_message('MDC component metadata fetched successfully')
    return {'components': len(catalog)}
