"""Smoke tests for mdclsp.server — document sync, completion, folding, commands."""
from __future__ import annotations

import asyncio
import json

import pytest

URI = 'file:///tmp/test_page.md'

CATALOG = [
    {
        'mdc_name': 'alert',
        'description': 'Callout box',
        'props': [
            {'name': 'icon', 'type': 'string', 'required': True},
            {'name': 'showIcon', 'type': 'boolean'},
        ],
        'slots': [{'name': 'default'}],
    },
]


@pytest.fixture
def srv():
    import mdclsp.server as srv
    from mdclsp.schema import parse_catalog
    srv._install_catalog(parse_catalog(CATALOG))
    yield srv
    srv._docs.clear()
    srv._caches.clear()
    srv._install_catalog(None)


def _open(srv, text: str, uri: str = URI):
    import lsprotocol.types as lsp
    srv.did_open(lsp.DidOpenTextDocumentParams(text_document=lsp.TextDocumentItem(
        uri=uri, language_id='markdown', version=1, text=text,
    )))


def _complete(srv, line: int, character: int):
    import lsprotocol.types as lsp
    return srv.completion(lsp.CompletionParams(
        text_document=lsp.TextDocumentIdentifier(uri=URI),
        position=lsp.Position(line=line, character=character),
    ))


class TestServerModule:
    def test_server_importable(self):
        from mdclsp.server import server
        assert server is not None

    def test_docs_dict(self):
        from mdclsp.server import _docs
        assert isinstance(_docs, dict)

    def test_trigger_characters(self):
        from mdclsp.server import COMPLETION_TRIGGER_CHARACTERS
        assert COMPLETION_TRIGGER_CHARACTERS == [':', ' ', '\n']


class TestDocumentSync:
    def test_open_and_change(self, srv):
        import lsprotocol.types as lsp
        _open(srv, '::alert\n::')
        assert srv._caches.lines(srv._docs[URI]) == ['::alert', '::']

        srv.did_change(lsp.DidChangeTextDocumentParams(
            text_document=lsp.VersionedTextDocumentIdentifier(uri=URI, version=2),
            content_changes=[lsp.TextDocumentContentChangeWholeDocument(text='# Title')],
        ))
        assert srv._docs[URI].version == 2
        assert srv._caches.lines(srv._docs[URI]) == ['# Title']

    def test_close(self, srv):
        import lsprotocol.types as lsp
        _open(srv, 'text')
        srv.did_close(lsp.DidCloseTextDocumentParams(
            text_document=lsp.TextDocumentIdentifier(uri=URI),
        ))
        assert URI not in srv._docs
        assert URI not in srv._caches.line_store


class TestCompletion:
    def test_unknown_document(self, srv):
        assert _complete(srv, 0, 0) is None

    def test_component_names(self, srv):
        _open(srv, '::')
        result = _complete(srv, 0, 2)
        assert [item.label for item in result.items] == ['alert']
        assert result.is_incomplete is False

    def test_property_names(self, srv):
        _open(srv, '::alert\n---\n\n---\n::')
        result = _complete(srv, 2, 0)
        assert [item.label for item in result.items] == ['icon', 'show-icon']

    def test_prop_completions_disabled(self, srv):
        _open(srv, '::alert\n---\n\n---\n::')
        srv.did_change_configuration(_config_params({'enablePropCompletions': False}))
        try:
            assert _complete(srv, 2, 0).items == []
        finally:
            srv.did_change_configuration(_config_params({'enablePropCompletions': True}))
        assert srv._settings.enable_prop_completions is True


def _config_params(mdc: dict):
    import lsprotocol.types as lsp
    return lsp.DidChangeConfigurationParams(settings={'mdc': mdc})


class TestFoldingRange:
    def test_component_block(self, srv):
        import lsprotocol.types as lsp
        _open(srv, '::alert\n---\nicon: x\n---\nBody\n::')
        ranges = srv.folding_range(lsp.FoldingRangeParams(
            text_document=lsp.TextDocumentIdentifier(uri=URI),
        ))
        assert [(r.start_line, r.end_line) for r in ranges] == [(0, 5)]


class TestRefreshCommand:
    def test_without_source(self, srv):
        assert srv._metadata.source is None
        assert asyncio.run(srv.cmd_refresh_metadata()) is None

    def test_forced_refresh_installs_catalog(self, srv, tmp_path, monkeypatch):
        from mdclsp.metadata import MetadataStore
        path = tmp_path / 'components.json'
        path.write_text(json.dumps([{'mdc_name': 'badge'}, {'mdc_name': 'card'}]))
        monkeypatch.setattr(srv, '_metadata', MetadataStore(str(path)))

        assert asyncio.run(srv.cmd_refresh_metadata()) == {'components': 2}
        assert srv._caches.schemas.component('badge') is not None
        assert srv._caches.schemas.component('alert') is None

    def test_failed_refresh(self, srv, tmp_path, monkeypatch):
        from mdclsp.metadata import MetadataStore
        monkeypatch.setattr(srv, '_metadata', MetadataStore(str(tmp_path / 'missing.json')))

        assert asyncio.run(srv.cmd_refresh_metadata()) is None
        assert srv._metadata.last_error is not None


class TestInitialize:
    def test_startup_overrides_apply(self, srv, tmp_path, monkeypatch):
        import lsprotocol.types as lsp
        monkeypatch.setattr(srv, '_settings', srv._settings)
        monkeypatch.setattr(srv, '_workspace_root', srv._workspace_root)
        monkeypatch.setattr(srv, '_startup_overrides', srv._startup_overrides)
        srv.set_startup_overrides({'enablePropCompletions': False})

        srv.on_initialize(lsp.InitializeParams(
            capabilities=lsp.ClientCapabilities(), root_uri=tmp_path.as_uri(),
        ))
        assert srv._workspace_root == str(tmp_path)
        assert srv._settings.enable_prop_completions is False

    def test_client_options_win(self, srv, tmp_path, monkeypatch):
        import lsprotocol.types as lsp
        monkeypatch.setattr(srv, '_settings', srv._settings)
        monkeypatch.setattr(srv, '_workspace_root', srv._workspace_root)
        monkeypatch.setattr(srv, '_startup_overrides', {'enablePropCompletions': False})

        srv.on_initialize(lsp.InitializeParams(
            capabilities=lsp.ClientCapabilities(), root_uri=tmp_path.as_uri(),
            initialization_options={'mdc': {'enablePropCompletions': True}},
        ))
        assert srv._settings.enable_prop_completions is True
