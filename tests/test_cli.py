"""Tests for mdclsp.cli — argument parsing, settings overrides and catalog listing."""
from __future__ import annotations

import json

import pytest

from mdclsp.cli import _build_parser, mdclsp, settings_overrides
from mdclsp.config import load_settings


class TestParser:
    def test_defaults(self):
        args = _build_parser().parse_args([])
        assert args.tcp is None
        assert args.stdio is False
        assert args.log_level == 'WARNING'
        assert settings_overrides(args) == {}

    def test_tcp(self):
        args = _build_parser().parse_args(['--tcp', '2087', '--log-level', 'DEBUG'])
        assert args.tcp == 2087
        assert args.log_level == 'DEBUG'

    def test_stdio_and_tcp_are_exclusive(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(['--stdio', '--tcp', '2087'])

    def test_invalid_ttl_rejected(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(['--cache-ttl', 'soon'])


class TestSettingsOverrides:
    def test_catalog_options(self):
        args = _build_parser().parse_args([
            '--metadata-url', 'components.json', '--cache-ttl', '15', '--no-prop-completions',
        ])
        assert settings_overrides(args) == {
            'componentMetadataURL': 'components.json',
            'componentMetadataCacheTTL': 15.0,
            'enablePropCompletions': False,
        }

    def test_overrides_beat_project_file(self, tmp_path):
        (tmp_path / '.mdclsp.toml').write_text(
            'componentMetadataURL = "from-file.json"\ncomponentMetadataCacheTTL = 5\n'
        )
        args = _build_parser().parse_args(['--metadata-url', 'from-cli.json'])
        s = load_settings(str(tmp_path), overrides=settings_overrides(args))
        assert s.component_metadata_url == 'from-cli.json'
        assert s.component_metadata_cache_ttl == 5.0

    def test_client_options_beat_overrides(self, tmp_path):
        args = _build_parser().parse_args(['--metadata-url', 'from-cli.json', '--no-prop-completions'])
        s = load_settings(str(tmp_path), {'mdc': {'componentMetadataURL': 'from-client.json'}},
                          settings_overrides(args))
        assert s.component_metadata_url == 'from-client.json'
        assert s.enable_prop_completions is False

    def test_server_receives_overrides(self, monkeypatch):
        import mdclsp.server as srv
        monkeypatch.setattr(srv, '_startup_overrides', {})
        monkeypatch.setattr(srv.server, 'start_io', lambda: None)
        mdclsp(['--metadata-url', 'components.json', '--no-prop-completions'])
        assert srv._startup_overrides == {
            'componentMetadataURL': 'components.json',
            'enablePropCompletions': False,
        }


class TestListComponents:
    def test_lists_catalog(self, tmp_path, monkeypatch, capsys):
        (tmp_path / 'components.json').write_text(json.dumps([
            {'mdc_name': 'alert', 'description': 'Callout box',
             'props': [{'name': 'icon'}, {'name': 'showIcon'}]},
            {'mdc_name': 'badge'},
        ]))
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            mdclsp(['--list-components', '--metadata-url', 'components.json'])
        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert 'alert - Callout box\n    props: icon, showIcon' in out
        assert 'badge\n    props: (none)' in out

    def test_uses_project_file(self, tmp_path, monkeypatch, capsys):
        (tmp_path / 'meta.yaml').write_text('- mdc_name: card\n')
        (tmp_path / '.mdclsp.toml').write_text('[mdc]\ncomponentMetadataURL = "meta.yaml"\n')
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            mdclsp(['--list-components'])
        assert exc.value.code == 0
        assert capsys.readouterr().out.startswith('card\n')

    def test_without_source(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            mdclsp(['--list-components'])
        assert exc.value.code == 2
        assert '--metadata-url' in capsys.readouterr().err

    def test_unreadable_catalog(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            mdclsp(['--list-components', '--metadata-url', 'missing.json'])
        assert exc.value.code == 1
        assert 'Failed to read MDC component metadata' in capsys.readouterr().err


def test_version(capsys):
    from mdclsp import __version__
    with pytest.raises(SystemExit) as exc:
        mdclsp(['--version'])
    assert exc.value.code == 0
    assert capsys.readouterr().out.strip() == f'mdclsp {__version__}'
