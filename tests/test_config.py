"""
Tests for editor configuration (config.json + environment overrides).
"""

import json
from pathlib import Path

import pytest

from callflow.config import (
    EditorSettings,
    get_editor_settings,
    load_config,
    save_config,
    set_editor_setting,
)
from callflow.paths import get_config_path, get_templates_path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('CALLFLOW_ADD_NODE_ANCHOR', 'CALLFLOW_ID_STRATEGY', 'CALLFLOW_TEMPLATES_PATH'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / 'config.json'


def test_defaults_without_config(config_path):
    assert get_editor_settings(config_path) == EditorSettings()


def test_load_missing_and_invalid(config_path):
    assert load_config(config_path) == {}
    config_path.write_text('{broken', encoding='utf-8')
    assert load_config(config_path) == {}
    config_path.write_text('[1, 2]', encoding='utf-8')
    assert load_config(config_path) == {}


def test_save_and_load(config_path):
    save_config({'editor': {'id_strategy': 'uuid'}}, config_path)
    assert json.loads(config_path.read_text(encoding='utf-8')) == {'editor': {'id_strategy': 'uuid'}}
    assert get_editor_settings(config_path).id_strategy == 'uuid'


def test_config_file_values(config_path):
    save_config({'editor': {
        'add_node_anchor': [120, 80],
        'start_position': '40, 50',
        'templates_path': '/tmp/flows.yaml',
    }}, config_path)
    settings = get_editor_settings(config_path)
    assert settings.add_node_anchor == (120.0, 80.0)
    assert settings.start_position == (40.0, 50.0)
    assert settings.templates_path == Path('/tmp/flows.yaml')


def test_environment_takes_priority(config_path, monkeypatch):
    save_config({'editor': {'add_node_anchor': [1, 1], 'id_strategy': 'counter'}}, config_path)
    monkeypatch.setenv('CALLFLOW_ADD_NODE_ANCHOR', '500,250')
    monkeypatch.setenv('CALLFLOW_ID_STRATEGY', 'uuid')

    settings = get_editor_settings(config_path)

    assert settings.add_node_anchor == (500.0, 250.0)
    assert settings.id_strategy == 'uuid'


def test_bad_values_fall_back_to_defaults(config_path, monkeypatch):
    monkeypatch.setenv('CALLFLOW_ADD_NODE_ANCHOR', 'left')
    monkeypatch.setenv('CALLFLOW_ID_STRATEGY', 'timestamp')
    save_config({'editor': 'not a section'}, config_path)

    settings = get_editor_settings(config_path)

    assert settings.add_node_anchor == (300, 200)
    assert settings.id_strategy == 'counter'


def test_set_editor_setting_preserves_other_keys(config_path):
    save_config({'theme': 'dark'}, config_path)
    set_editor_setting('id_strategy', 'uuid', config_path)
    assert load_config(config_path) == {'theme': 'dark', 'editor': {'id_strategy': 'uuid'}}


def test_paths():
    assert get_config_path().name == 'config.json'
    assert get_templates_path().name == 'templates.yaml'
    assert get_templates_path().exists()
