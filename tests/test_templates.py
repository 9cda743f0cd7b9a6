"""
Tests for the flow template library.
"""

import pytest

from callflow.editor import FlowEditor
from callflow.config import EditorSettings
from callflow.templates import ALL_CATEGORIES, TemplateLibrary, get_template_library


@pytest.fixture
def library():
    return TemplateLibrary()


def test_bundled_templates_load(library):
    ids = [t['id'] for t in library.list_templates()]
    assert ids == [
        'basic-routing', 'rtb-auction', 'time-based-routing',
        'capacity-overflow', 'caller-screening', 'emergency-routing',
    ]


def test_search_matches_name_and_description(library):
    assert [t['id'] for t in library.list_templates(search='AUCTION')] == ['rtb-auction']
    assert [t['id'] for t in library.list_templates(search='qualify')] == ['caller-screening']


def test_category_filter(library):
    routing = library.list_templates(category='routing')
    assert {t['id'] for t in routing} == {'basic-routing', 'time-based-routing'}
    assert library.list_templates(search='auction', category='routing') == []
    assert len(library.list_templates(category=ALL_CATEGORIES)) == 6


def test_categories_start_with_all(library):
    categories = library.categories()
    assert categories[0] == {'value': 'all', 'label': 'All Categories'}
    assert {'value': 'rtb', 'label': 'RTB'} in categories


def test_get_template_returns_copy(library):
    template = library.get_template('basic-routing')
    template['flowDefinition']['nodes'].clear()
    assert len(library.get_template('basic-routing')['flowDefinition']['nodes']) == 5
    assert library.get_template('missing') is None


def test_to_flow_data_loads_into_editor(library):
    template = library.get_template('rtb-auction')
    flow = TemplateLibrary.to_flow_data(template)
    assert flow['status'] == 'draft'
    assert flow['isTemplate'] is False

    editor = FlowEditor.load(flow, settings=EditorSettings())
    assert editor.name == 'RTB Auction Flow'
    assert len(editor.store) == 6
    assert len(editor.store.connections) == 7
    assert editor.store.get_node('rtb-auction').config == {'actionType': 'rtb'}
    assert editor.store.check_integrity() == []


def test_every_template_hydrates_cleanly(library):
    for template in library.list_templates():
        editor = FlowEditor.load(TemplateLibrary.to_flow_data(template), settings=EditorSettings())
        assert editor.store.start_node.id == 'start'
        assert len(editor.store.connections) == len(template['flowDefinition']['connections'])


def test_missing_file_gives_empty_library(tmp_path):
    library = TemplateLibrary(tmp_path / 'missing.yaml')
    assert library.list_templates() == []


def test_invalid_entries_skipped(tmp_path):
    path = tmp_path / 'templates.yaml'
    path.write_text(
        "templates:\n"
        "  - id: only-id\n"
        "  - id: ok\n"
        "    name: Ok\n"
        "    flowDefinition: {nodes: [], connections: []}\n",
        encoding='utf-8',
    )
    library = TemplateLibrary(path)
    templates = library.list_templates()
    assert [t['id'] for t in templates] == ['ok']
    assert templates[0]['category'] == 'routing'


def test_invalid_yaml(tmp_path):
    path = tmp_path / 'templates.yaml'
    path.write_text("templates: [unclosed", encoding='utf-8')
    assert TemplateLibrary(path).list_templates() == []


def test_reload_picks_up_changes(tmp_path):
    path = tmp_path / 'templates.yaml'
    path.write_text("templates: []\n", encoding='utf-8')
    library = TemplateLibrary(path)
    assert library.list_templates() == []

    path.write_text(
        "templates:\n  - {id: a, name: A, flowDefinition: {nodes: []}}\n",
        encoding='utf-8',
    )
    assert library.list_templates() == []
    library.reload()
    assert len(library.list_templates()) == 1


def test_global_library(monkeypatch):
    monkeypatch.setattr('callflow.templates._library', None)
    assert get_template_library() is get_template_library()
