"""Tests for mdclsp.config — layered settings."""
from __future__ import annotations

import logging
from types import SimpleNamespace

from mdclsp.config import (
    DEFAULT_CACHE_TTL_MINUTES,
    PROJECT_CONFIG_NAME,
    Settings,
    load_settings,
    read_project_config,
)


class TestSettingsMerge:
    def test_defaults(self):
        s = Settings()
        assert s.component_metadata_url is None
        assert s.component_metadata_cache_ttl == DEFAULT_CACHE_TTL_MINUTES
        assert s.enable_prop_completions is True
        assert s.effective_log_level is None

    def test_mdc_section(self):
        s = Settings().merged({'mdc': {
            'componentMetadataURL': 'https://example.com/components.json',
            'componentMetadataCacheTTL': 30,
        }})
        assert s.component_metadata_url == 'https://example.com/components.json'
        assert s.component_metadata_cache_ttl == 30.0

    def test_flat_and_snake_case_keys(self):
        s = Settings().merged({'enable_prop_completions': False, 'logLevel': 'info'})
        assert s.enable_prop_completions is False
        assert s.log_level == 'INFO'

    def test_none_and_unknown_keys_leave_settings_unchanged(self):
        base = Settings(component_metadata_url='a.json')
        assert base.merged({'componentMetadataURL': None, 'other': 1}) is base
        assert base.merged(None) is base

    def test_blank_url_disables_source(self):
        s = Settings(component_metadata_url='a.json').merged({'componentMetadataURL': '  '})
        assert s.component_metadata_url is None

    def test_invalid_ttl_is_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger='mdclsp.config'):
            s = Settings(component_metadata_cache_ttl=5).merged({'componentMetadataCacheTTL': 'soon'})
        assert s.component_metadata_cache_ttl == 5
        assert 'componentMetadataCacheTTL' in caplog.text

    def test_non_positive_ttl_falls_back_to_default(self):
        s = Settings(component_metadata_cache_ttl=5).merged({'componentMetadataCacheTTL': 0})
        assert s.component_metadata_cache_ttl == DEFAULT_CACHE_TTL_MINUTES

    def test_debug_forces_debug_level(self):
        s = Settings().merged({'debug': True, 'logLevel': 'error'})
        assert s.effective_log_level == 'DEBUG'

    def test_typed_object(self):
        s = Settings().merged(SimpleNamespace(componentMetadataURL='meta.yml'))
        assert s.component_metadata_url == 'meta.yml'


class TestProjectConfig:
    def test_missing_root_or_file(self, tmp_path):
        assert read_project_config(None) == {}
        assert read_project_config(str(tmp_path)) == {}

    def test_reads_toml(self, tmp_path):
        (tmp_path / PROJECT_CONFIG_NAME).write_text(
            '[mdc]\ncomponent_metadata_url = "meta.json"\ncomponent_metadata_cache_ttl = 10\n'
        )
        s = load_settings(str(tmp_path))
        assert s.component_metadata_url == 'meta.json'
        assert s.component_metadata_cache_ttl == 10.0

    def test_invalid_toml(self, tmp_path, caplog):
        (tmp_path / PROJECT_CONFIG_NAME).write_text('[mdc\n')
        with caplog.at_level(logging.WARNING, logger='mdclsp.config'):
            assert read_project_config(str(tmp_path)) == {}
        assert PROJECT_CONFIG_NAME in caplog.text

    def test_init_options_override_project_file(self, tmp_path):
        (tmp_path / PROJECT_CONFIG_NAME).write_text(
            'componentMetadataURL = "from-file.json"\nenablePropCompletions = false\n'
        )
        s = load_settings(str(tmp_path), {'mdc': {'componentMetadataURL': 'from-client.json'}})
        assert s.component_metadata_url == 'from-client.json'
        assert s.enable_prop_completions is False
